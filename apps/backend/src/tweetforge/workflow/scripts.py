"""JavaScript bodies for the workflow's n8n function nodes.

Values derived from the caller's options are embedded as JSON literals, which
are also valid JavaScript, so quotes and unicode in hashtags or handles cannot
break the generated script.
"""

import json

# Engagement actions fanned out from every search query, in order.
ENGAGEMENT_PLAN: list[dict] = [
    {"action": "like", "limit": 2},
    {"action": "retweet", "limit": 1},
]


def _literal(value) -> str:
    return json.dumps(value, ensure_ascii=False)


def normalise_brief_script(
    tone: str,
    include_image: bool,
    engagement_hashtags: list[str],
    dm_handles: list[str],
) -> str:
    """Parse the intake form's comma separated fields into request payloads."""
    default_hashtags = _literal(engagement_hashtags)
    return f"""const input = $json;
const normaliseList = (value, fallback) => {{
  if (!value) {{
    return fallback;
  }}
  const items = value
    .split(',')
    .map((entry) => entry.trim().replace(/^@/, ''))
    .filter(Boolean);
  return items.length ? items : fallback;
}};

return [
  {{
    json: {{
      generateBody: {{
        topic: input.topic,
        niche: input.niche,
        tone: input.tone || {_literal(tone)},
        callToAction: input.callToAction,
        includeImage: input.generateImage ?? {_literal(include_image)},
        hashtags: normaliseList(input.hashtags, {default_hashtags}),
      }},
      engagementFilters: normaliseList(input.engagementFilters, {default_hashtags}),
      dmTargets: normaliseList(input.dmTargets, {_literal(dm_handles)}),
    }},
  }},
];"""


def prepare_payloads_script(normalise_node_name: str) -> str:
    """Split the generation response into publish, DM and engagement payloads.

    DM targets are read back from the normalise node because the generation
    call does not echo them.
    """
    return f"""const payload = $json;
const brief = $node[{_literal(normalise_node_name)}].json;
return [
  {{
    json: {{
      publishBody: {{
        tweet: payload.tweet,
        thread: payload.thread,
        altText: payload.altText,
        imageBase64: payload.imageBase64,
      }},
      dmBody: {{
        message: payload.dmMessage,
      }},
      engagementTargets: payload.engagementTargets,
      dmTargets: brief.dmTargets,
    }},
  }},
];"""


def hydrate_engagement_script() -> str:
    """Expand each engagement target query into the actions of ENGAGEMENT_PLAN."""
    return f"""const targets = $json.engagementTargets || [];
const plan = {_literal(ENGAGEMENT_PLAN)};
const actions = [];

for (const query of targets) {{
  for (const step of plan) {{
    actions.push({{ searchQuery: query, action: step.action, limit: step.limit }});
  }}
}}

return [{{ json: {{ engagements: actions }} }}];"""


PREPARE_DM_SCRIPT = """const handles = $json.dmTargets || [];
const recipients = handles.map((handle) => ({ handle }));

return [{ json: { message: $json.dmBody.message, recipients } }];"""
