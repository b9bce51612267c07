"""Pull the JSON result object out of Godot's console output."""

import json
import re

from godot_agent.errors import MalformedJson, NoJsonFound

# Greedy: first "{" through the last "}" in the whole output. Stray braces in
# trailing log noise widen the span and make the result fail to parse.
_RE_JSON_SPAN = re.compile(r"\{.*\}", re.DOTALL)


def extract_result(text: str) -> dict:
    """Parse the JSON object embedded in ``text``.

    Godot prints its version banner and other diagnostics around the single
    line the bridge script writes, so the object is located by span rather
    than by parsing the whole output.

    Raises:
        NoJsonFound: No brace-delimited span exists in ``text``.
        MalformedJson: A span exists but is not valid JSON.
    """
    match = _RE_JSON_SPAN.search(text or "")
    if not match:
        raise NoJsonFound(text)

    try:
        return json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise MalformedJson(text, e) from e
