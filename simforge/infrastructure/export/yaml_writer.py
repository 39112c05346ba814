"""
YAML emission for simulation configurations.

The runner's configuration format is stricter about presentation than YAML
itself: string values are double-quoted, prompt bodies are literal block
scalars so authors see their own line breaks, and short numeric lists are
written inline. Values are tagged with the wrapper types below while the
document is assembled, and ``ConfigDumper`` renders each tag in its style.
"""

from __future__ import annotations

import re
from typing import Any

import yaml

STR_TAG = "tag:yaml.org,2002:str"
SEQ_TAG = "tag:yaml.org,2002:seq"

# Characters a literal block cannot carry verbatim, including the line
# breaks YAML knows besides LF (NEL, LS, PS). Anything matching falls back
# to a double-quoted scalar, which can escape it.
_BLOCK_UNSAFE = re.compile(
    "[^\x09\x0A\x20-\x7E\xA0-\u2027\u202A-\uD7FF\uE000-\uFEFE\uFF00-\uFFFD\U00010000-\U0010FFFF]"
)


class QuotedStr(str):
    """Emitted as a double-quoted scalar."""


class BlockStr(str):
    """Emitted as a literal block scalar (``|``)."""


class FlowList(list):
    """Emitted inline, e.g. ``[1, 3]``."""


class ConfigDumper(yaml.SafeDumper):
    """SafeDumper with indented block sequences and forced literal blocks."""

    def increase_indent(self, flow: bool = False, indentless: bool = False):
        return super().increase_indent(flow, False)

    def ignore_aliases(self, data: Any) -> bool:
        return True

    def choose_scalar_style(self):
        # PyYAML refuses block style for text with trailing spaces; block
        # scalars keep those spaces, so only truly unsafe text is refused.
        if self.event.style == "|" and _BLOCK_UNSAFE.search(self.event.value):
            return '"'
        if self.event.style == "|" and not self.flow_level and not self.simple_key_context:
            if self.analysis is None:
                self.analysis = self.analyze_scalar(self.event.value)
            return "|"
        return super().choose_scalar_style()


def _represent_quoted(dumper: ConfigDumper, data: QuotedStr) -> yaml.ScalarNode:
    return dumper.represent_scalar(STR_TAG, str(data), style='"')


def _represent_block(dumper: ConfigDumper, data: BlockStr) -> yaml.ScalarNode:
    return dumper.represent_scalar(STR_TAG, str(data), style="|")


def _represent_flow_list(dumper: ConfigDumper, data: FlowList) -> yaml.SequenceNode:
    return dumper.represent_sequence(SEQ_TAG, list(data), flow_style=True)


ConfigDumper.add_representer(QuotedStr, _represent_quoted)
ConfigDumper.add_representer(BlockStr, _represent_block)
ConfigDumper.add_representer(FlowList, _represent_flow_list)


def quote_strings(value: Any) -> Any:
    """Tag every untagged string value (never a mapping key) as quoted."""
    if isinstance(value, (QuotedStr, BlockStr)):
        return value
    if isinstance(value, str):
        return QuotedStr(value)
    if isinstance(value, dict):
        return {key: quote_strings(item) for key, item in value.items()}
    if isinstance(value, FlowList):
        return FlowList(quote_strings(item) for item in value)
    if isinstance(value, (list, tuple)):
        return [quote_strings(item) for item in value]
    return value


def dump_config(document: dict[str, Any]) -> str:
    """Render an assembled document. Keys keep their insertion order."""
    return yaml.dump(
        quote_strings(document),
        Dumper=ConfigDumper,
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
        width=float("inf"),
    )
