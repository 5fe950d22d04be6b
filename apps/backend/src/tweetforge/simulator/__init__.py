"""In-memory stand-ins for the OpenAI and Twitter connectors."""

from .services import SimulatedGenerator, SimulatedTwitter
from .state import SimulatorState


def create_simulator() -> tuple[SimulatorState, dict]:
    """Create a fresh simulator with all services wired together."""
    state = SimulatorState()

    services = {
        "openai": SimulatedGenerator(state),
        "twitter": SimulatedTwitter(state),
    }

    return state, services
