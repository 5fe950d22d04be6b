"""Pydantic models describing an importable n8n workflow document."""

from datetime import datetime
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

FORM_TRIGGER_TYPE = "n8n-nodes-base.formTrigger"
FUNCTION_TYPE = "n8n-nodes-base.function"
HTTP_REQUEST_TYPE = "n8n-nodes-base.httpRequest"


class N8nModel(BaseModel):
    """Base model that reads and writes n8n's camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class WorkflowOptions(N8nModel):
    """Caller supplied configuration for a generated workflow."""

    workflow_name: str = Field(..., min_length=3)
    form_path: str = Field(..., pattern=r"^[A-Za-z0-9-]+$")
    openai_credential_name: str = Field(..., min_length=2, alias="openAiCredentialName")
    twitter_credential_name: str = Field(..., min_length=2)
    tone: str = "professional"
    include_image: bool = True
    include_engagement: bool = True
    include_dm: bool = True
    engagement_hashtags: list[str] = []
    dm_handles: list[str] = []


# ----------------------------------------------------------------------
# Node parameters
# ----------------------------------------------------------------------


class SelectOption(N8nModel):
    name: str
    value: str


class SelectOptions(N8nModel):
    options: list[SelectOption]


class FormField(N8nModel):
    """A single input on the intake form."""

    field_label: str
    field_name: str
    field_type: Literal["text", "textarea", "select", "boolean"]
    required: Optional[bool] = None
    placeholder: Optional[str] = None
    default: Optional[Union[bool, str]] = None
    options_collection: Optional[SelectOptions] = None


class FormOptions(N8nModel):
    webhook_path: str
    button_label: str


class FormTriggerParameters(N8nModel):
    form_title: str
    form_description: str
    response_mode: str = "onSubmit"
    fields: list[FormField]
    options: FormOptions


class FunctionParameters(N8nModel):
    function_code: str


class HttpRequestOptions(N8nModel):
    timeout: int = 60000  # milliseconds


class HttpRequestParameters(N8nModel):
    method: Literal["GET", "POST"] = "POST"
    url: str
    send_body: bool = True
    json_parameters: bool = True
    body_parameters_json: str
    options: HttpRequestOptions = HttpRequestOptions()


# ----------------------------------------------------------------------
# Nodes
# ----------------------------------------------------------------------


class NodeBase(N8nModel):
    """Fields shared by every node kind."""

    id: str
    name: str  # edge reference key, unique within a document
    position: tuple[int, int]
    disabled: Optional[bool] = None


class FormTriggerNode(NodeBase):
    type: Literal["n8n-nodes-base.formTrigger"] = FORM_TRIGGER_TYPE
    type_version: float = 2.4
    parameters: FormTriggerParameters
    webhook_id: str


class FunctionNode(NodeBase):
    type: Literal["n8n-nodes-base.function"] = FUNCTION_TYPE
    type_version: int = 2
    parameters: FunctionParameters


class HttpRequestNode(NodeBase):
    type: Literal["n8n-nodes-base.httpRequest"] = HTTP_REQUEST_TYPE
    type_version: float = 4.2
    parameters: HttpRequestParameters


WorkflowNode = Annotated[
    Union[FormTriggerNode, FunctionNode, HttpRequestNode],
    Field(discriminator="type"),
]


# ----------------------------------------------------------------------
# Document
# ----------------------------------------------------------------------


class ConnectionEdge(N8nModel):
    """One edge inside an output port: target node name and input slot."""

    node: str
    type: Literal["main"] = "main"
    index: int = 0


class NodeConnections(N8nModel):
    # One list per output port; parallel fan-out is several edges in one port.
    main: list[list[ConnectionEdge]]


class WorkflowSettings(N8nModel):
    timezone: str = "UTC"


class WorkflowTag(N8nModel):
    name: str


class WorkflowDocument(N8nModel):
    """A complete n8n workflow ready to be imported."""

    id: Optional[str] = None
    name: str
    active: bool = False
    nodes: list[WorkflowNode]
    connections: dict[str, NodeConnections]
    version_id: str
    settings: WorkflowSettings = WorkflowSettings()
    static_data: Optional[dict[str, Any]] = None
    tags: list[WorkflowTag] = []

    def get_node(self, name: str) -> Union[FormTriggerNode, FunctionNode, HttpRequestNode]:
        for node in self.nodes:
            if node.name == name:
                return node
        raise KeyError(name)

    def to_n8n(self) -> dict[str, Any]:
        """Return the JSON object n8n imports.

        Unset optional keys are dropped, except ``id`` which n8n expects as an
        explicit null on new workflows.
        """
        data = self.model_dump(mode="json", by_alias=True, exclude_none=True)
        data["id"] = self.id
        return data


class WorkflowMetadata(N8nModel):
    created_at: datetime
    download_name: str


class WorkflowBuildResult(N8nModel):
    workflow: WorkflowDocument
    metadata: WorkflowMetadata

    def to_n8n(self) -> dict[str, Any]:
        return {
            "workflow": self.workflow.to_n8n(),
            "metadata": self.metadata.model_dump(mode="json", by_alias=True),
        }
