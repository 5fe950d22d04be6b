"""Builds the importable n8n workflow that drives the tweet automation flywheel.

The graph is fixed: a form trigger feeds a normalise step, the AI generation
call and a payload split, which then fans out to three branches (publish,
engagement, DM). Branches switched off by the caller stay in the document as
disabled nodes so they can be re-enabled after import.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Callable, Optional

from ..config import get_settings
from . import scripts
from .ids import IdSource, UuidIdSource
from .schema import (
    ConnectionEdge,
    FormField,
    FormOptions,
    FormTriggerNode,
    FormTriggerParameters,
    FunctionNode,
    FunctionParameters,
    HttpRequestNode,
    HttpRequestParameters,
    NodeConnections,
    SelectOption,
    SelectOptions,
    WorkflowBuildResult,
    WorkflowDocument,
    WorkflowMetadata,
    WorkflowOptions,
    WorkflowTag,
)

TONES = [
    "professional",
    "playful",
    "informative",
    "thoughtful",
    "inspirational",
    "promotional",
    "witty",
]

FORM_NODE = "Creative Brief Form"
NORMALISE_NODE = "Normalise Brief"
GENERATE_NODE = "AI Generate"
PREPARE_NODE = "Prepare Payloads"
PUBLISH_NODE = "Publish Tweet"
ENGAGEMENT_PREP_NODE = "Hydrate Engagement Requests"
ENGAGEMENT_NODE = "Engagement Actions"
DM_PREP_NODE = "Prepare DM"
DM_NODE = "DM Outreach"

WORKFLOW_TAGS = ["twitter", "ai"]
DOWNLOAD_SUFFIX = "-workflow.json"


def _form_node(options: WorkflowOptions, ids: IdSource) -> FormTriggerNode:
    fields = [
        FormField(
            field_label="Topic",
            field_name="topic",
            field_type="text",
            required=True,
            placeholder="What should the tweet cover?",
        ),
        FormField(
            field_label="Niche",
            field_name="niche",
            field_type="text",
            required=True,
            placeholder="Audience or vertical focus",
        ),
        FormField(
            field_label="Tone",
            field_name="tone",
            field_type="select",
            required=False,
            options_collection=SelectOptions(
                options=[SelectOption(name=tone, value=tone) for tone in TONES]
            ),
            default=options.tone,
        ),
        FormField(
            field_label="Call To Action",
            field_name="callToAction",
            field_type="textarea",
            required=False,
        ),
        FormField(
            field_label="Generate Image",
            field_name="generateImage",
            field_type="boolean",
            default=options.include_image,
        ),
        FormField(
            field_label="Hashtags",
            field_name="hashtags",
            field_type="text",
            required=False,
            placeholder="Comma separated optional hashtags",
        ),
        FormField(
            field_label="Engagement Searches",
            field_name="engagementFilters",
            field_type="textarea",
            required=False,
            placeholder=", ".join(options.engagement_hashtags),
        ),
        FormField(
            field_label="DM Targets",
            field_name="dmTargets",
            field_type="textarea",
            required=False,
            placeholder=", ".join(options.dm_handles),
        ),
    ]

    return FormTriggerNode(
        id=ids.new_id(),
        name=FORM_NODE,
        position=(240, 320),
        webhook_id=ids.new_id(),
        parameters=FormTriggerParameters(
            form_title=re.sub(r"\s+", " ", f"{options.workflow_name} Brief"),
            form_description=(
                "Collects the creative brief details (topic, niche, tone, hashtags) "
                "before invoking AI automation."
            ),
            fields=fields,
            options=FormOptions(
                webhook_path=options.form_path,
                button_label="Generate & Launch",
            ),
        ),
    )


def _function_node(
    name: str,
    code: str,
    position: tuple[int, int],
    ids: IdSource,
    disabled: Optional[bool] = None,
) -> FunctionNode:
    return FunctionNode(
        id=ids.new_id(),
        name=name,
        position=position,
        disabled=disabled,
        parameters=FunctionParameters(function_code=code),
    )


def _http_node(
    name: str,
    url: str,
    body_expression: str,
    position: tuple[int, int],
    ids: IdSource,
    disabled: Optional[bool] = None,
) -> HttpRequestNode:
    return HttpRequestNode(
        id=ids.new_id(),
        name=name,
        position=position,
        disabled=disabled,
        parameters=HttpRequestParameters(
            url=url,
            body_parameters_json=body_expression,
        ),
    )


def _connect(*targets: str) -> NodeConnections:
    """Single output port wired to every target (parallel fan-out)."""
    return NodeConnections(main=[[ConnectionEdge(node=target) for target in targets]])


def download_name(workflow_name: str) -> str:
    """Suggested filename: lower-cased name with non-alphanumeric runs hyphenated."""
    return re.sub(r"[^a-z0-9]+", "-", workflow_name.lower()) + DOWNLOAD_SUFFIX


def build_workflow(
    options: WorkflowOptions,
    *,
    base_url: Optional[str] = None,
    ids: Optional[IdSource] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> WorkflowBuildResult:
    """Assemble the nine-node workflow document for ``options``.

    ``base_url`` is where the HTTP nodes reach this service (defaults to the
    configured worker URL). ``ids`` and ``clock`` may be injected to make the
    output deterministic.
    """
    ids = ids or UuidIdSource()
    clock = clock or (lambda: datetime.now(timezone.utc))
    base = (base_url or get_settings().worker_base_url).rstrip("/")

    engagement_off = not options.include_engagement
    dm_off = not options.include_dm

    form = _form_node(options, ids)
    normalise = _function_node(
        NORMALISE_NODE,
        scripts.normalise_brief_script(
            tone=options.tone,
            include_image=options.include_image,
            engagement_hashtags=options.engagement_hashtags,
            dm_handles=options.dm_handles,
        ),
        (520, 320),
        ids,
    )
    generate = _http_node(
        GENERATE_NODE,
        f"{base}/api/generate",
        "={{ JSON.stringify($json.generateBody) }}",
        (800, 320),
        ids,
    )
    prepare = _function_node(
        PREPARE_NODE, scripts.prepare_payloads_script(NORMALISE_NODE), (1080, 320), ids
    )
    publish = _http_node(
        PUBLISH_NODE,
        f"{base}/api/twitter/publish",
        "={{ JSON.stringify($json.publishBody) }}",
        (1360, 220),
        ids,
    )
    engagement_prep = _function_node(
        ENGAGEMENT_PREP_NODE,
        scripts.hydrate_engagement_script(),
        (1360, 420),
        ids,
        disabled=engagement_off,
    )
    engagement = _http_node(
        ENGAGEMENT_NODE,
        f"{base}/api/twitter/engage",
        "={{ JSON.stringify({ engagements: $json.engagements }) }}",
        (1640, 420),
        ids,
        disabled=engagement_off,
    )
    dm_prep = _function_node(
        DM_PREP_NODE, scripts.PREPARE_DM_SCRIPT, (1360, 600), ids, disabled=dm_off
    )
    dm = _http_node(
        DM_NODE,
        f"{base}/api/twitter/dm",
        "={{ JSON.stringify($json) }}",
        (1640, 600),
        ids,
        disabled=dm_off,
    )

    connections = {
        form.name: _connect(normalise.name),
        normalise.name: _connect(generate.name),
        generate.name: _connect(prepare.name),
        prepare.name: _connect(publish.name, engagement_prep.name, dm_prep.name),
        engagement_prep.name: _connect(engagement.name),
        dm_prep.name: _connect(dm.name),
    }

    workflow = WorkflowDocument(
        name=options.workflow_name,
        nodes=[
            form,
            normalise,
            generate,
            prepare,
            publish,
            engagement_prep,
            engagement,
            dm_prep,
            dm,
        ],
        connections=connections,
        version_id=ids.new_id(),
        tags=[WorkflowTag(name=tag) for tag in WORKFLOW_TAGS],
    )

    return WorkflowBuildResult(
        workflow=workflow,
        metadata=WorkflowMetadata(
            created_at=clock(),
            download_name=download_name(options.workflow_name),
        ),
    )
