"""
Text Component - Serialize formatted runs as legacy text, JSON or SNBT text components
"""

import json
import re
from typing import Any, Dict, List, NamedTuple, Optional, Sequence

from nbtlib import String

from colors import DEFAULT_COLOR, FORMAT_CODES, resolve_color, section_code
from rich_text import DEFAULT_FORMAT, STYLE_FIELDS, FormattedRun
from version_compat import resolve_group


class ClickEvent(NamedTuple):
    action: str
    value: str


class HoverEvent(NamedTuple):
    """contents is a string, {'text': ...} or, for show_item, {'id': ...}"""
    action: str
    contents: Any


# Key that carries the click value in snake_case (1.21+) events
SNAKE_CLICK_KEYS = {
    'run_command': 'command',
    'suggest_command': 'command',
    'open_url': 'url',
    'copy_to_clipboard': 'contents',
    'change_page': 'page',
}

# Groups whose custom names render italic unless a plain first component resets it
PLACEHOLDER_GROUPS = ('nbt-legacy', 'nbt-modern', 'component')
NAME_PLACEHOLDER = {'text': '', 'italic': False}

_BARE_KEY = re.compile(r'^[a-zA-Z0-9._+-]+$')


def escape_text(text: str) -> str:
    """Backslash-escape backslash, double quote and newline"""
    return text.replace('\\', '\\\\').replace('"', '\\"').replace('\n', '\\n')


def to_snbt(value: Any) -> str:
    """Encode a text component value as SNBT (bare keys, bare booleans)"""
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, str):
        return f'"{escape_text(value)}"'
    if isinstance(value, dict):
        items = []
        for key, item in value.items():
            key = key if _BARE_KEY.match(key) else f'"{escape_text(key)}"'
            items.append(f'{key}:{to_snbt(item)}')
        return '{' + ','.join(items) + '}'
    if isinstance(value, (list, tuple)):
        return '[' + ','.join(to_snbt(item) for item in value) + ']'
    raise TypeError(f"Cannot encode {type(value).__name__} as SNBT")


def to_json(value: Any) -> str:
    return json.dumps(value, separators=(',', ':'), ensure_ascii=False)


def quote_nbt_string(text: str) -> str:
    """Wrap a serialized component as an SNBT string literal"""
    return String(text).snbt()


def plain_text(runs: Sequence[FormattedRun]) -> str:
    return ''.join(run.text for run in runs)


class TextComponentSerializer:
    """Turns compressed runs plus optional events into the text syntax of a format group"""

    def component_for_run(self, run: FormattedRun, group: str) -> Dict[str, Any]:
        """Build one component: text, the styles that are set, then color"""
        fmt = run.format
        component = {'text': run.text}
        for field in STYLE_FIELDS:
            if getattr(fmt, field):
                component[field] = True
        color = resolve_color(fmt.color, group)
        if color:
            component['color'] = color
        return component

    def click_payload(self, click: ClickEvent, group: str) -> Dict[str, Any]:
        if group != 'latest':
            return {'action': click.action, 'value': click.value}

        key = SNAKE_CLICK_KEYS.get(click.action, 'value')
        value = click.value
        if click.action == 'run_command' and value.startswith('/'):
            value = value[1:]
        elif click.action == 'change_page':
            value = _page_number(value)
        return {'action': click.action, key: value}

    def hover_payload(self, hover: HoverEvent, group: str) -> Dict[str, Any]:
        contents = hover.contents
        if isinstance(contents, dict):
            contents = dict(contents)

        if group != 'latest':
            return {'action': hover.action, 'contents': contents}

        # show_text keeps a single value; item/entity hovers inline their fields
        if hover.action == 'show_text':
            return {'action': hover.action, 'value': contents}
        payload = {'action': hover.action}
        if isinstance(contents, dict):
            payload.update(contents)
        else:
            payload['id'] = contents
        return payload

    def build_components(self, runs: Sequence[FormattedRun], group: str,
                         click: Optional[ClickEvent] = None,
                         hover: Optional[HoverEvent] = None) -> List[Dict[str, Any]]:
        components = [self.component_for_run(run, group) for run in runs]
        if components:
            first = components[0]
            snake = group == 'latest'
            if click:
                first['click_event' if snake else 'clickEvent'] = self.click_payload(click, group)
            if hover:
                first['hover_event' if snake else 'hoverEvent'] = self.hover_payload(hover, group)
        return components

    def serialize(self, runs: Sequence[FormattedRun], group: str,
                  click: Optional[ClickEvent] = None, hover: Optional[HoverEvent] = None,
                  context: str = 'message', collapse: bool = False) -> str:
        """
        Serialize runs for a format group.

        legacy yields the plain concatenated text. Other groups yield a single
        component or, for two or more runs, an array; latest uses SNBT and the
        rest compact JSON. In the custom_name context a non-italic empty
        component leads the array for the JSON groups.
        """
        if group == 'legacy':
            return plain_text(runs)
        if not runs:
            return self.encode('', group)

        components = self.build_components(runs, group, click, hover)
        if len(components) == 1:
            value = components[0]
            if collapse and list(value) == ['text']:
                value = value['text']
        else:
            value = components
            if context == 'custom_name' and group in PLACEHOLDER_GROUPS:
                value = [dict(NAME_PLACEHOLDER)] + components
        return self.encode(value, group)

    def serialize_text(self, text: str, group: str, context: str = 'message') -> str:
        """Serialize unformatted text as a single component"""
        if not text:
            return self.serialize([], group, context=context)
        return self.serialize([FormattedRun(text, DEFAULT_FORMAT)], group, context=context)

    def encode(self, value: Any, group: str) -> str:
        if group == 'latest':
            return to_snbt(value)
        return to_json(value)

    def section_code_string(self, runs: Sequence[FormattedRun], group: str = 'legacy') -> str:
        """Render runs with section sign codes, colors limited to what the group supports"""
        parts = []
        previous = None
        for run in runs:
            fmt = run.format
            if fmt != previous:
                if fmt == DEFAULT_FORMAT:
                    if previous is not None:
                        parts.append('§r')
                else:
                    color = resolve_color(fmt.color, group)
                    if not color or color.startswith('#'):
                        color = resolve_color(fmt.color, 'legacy') or DEFAULT_COLOR
                    parts.append('§' + section_code(color))
                    for field, code in FORMAT_CODES.items():
                        if getattr(fmt, field):
                            parts.append('§' + code)
                previous = fmt
            parts.append(run.text)
        return ''.join(parts)


def _page_number(value: Any) -> int:
    """Page for change_page; anything that is not a positive page reads as 1"""
    try:
        page = int(value)
    except (TypeError, ValueError):
        return 1
    return page or 1


def serialize_session(session, version: str, context: str = 'message', collapse: bool = False) -> str:
    """Serialize an EditorSession's runs and events for a target version"""
    serializer = TextComponentSerializer()
    return serializer.serialize(session.runs(), resolve_group(version),
                                click=session.click_event, hover=session.hover_event,
                                context=context, collapse=collapse)
