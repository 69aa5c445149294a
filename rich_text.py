"""
Rich Text - Per-character style buffer, run compression and selection editing
"""

import re
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Set

from colors import CODE_COLORS, CODE_FORMATS, RESET_CODE

STYLE_FIELDS = ('bold', 'italic', 'underlined', 'strikethrough', 'obfuscated')


class FormatState(NamedTuple):
    """Style of a single character"""
    color: str = 'white'
    bold: bool = False
    italic: bool = False
    underlined: bool = False
    strikethrough: bool = False
    obfuscated: bool = False

    def patched(self, patch: Dict[str, Any]) -> 'FormatState':
        """Return a copy with the patch's fields replaced (unknown keys ignored)"""
        changes = {key: value for key, value in patch.items() if key in self._fields}
        if not changes:
            return self
        return self._replace(**changes)

    def is_default(self) -> bool:
        return self == DEFAULT_FORMAT


DEFAULT_FORMAT = FormatState()


class StyledChar(NamedTuple):
    char: str
    format: FormatState


class FormattedRun(NamedTuple):
    text: str
    format: FormatState


class RunBuffer:
    """Ordered per-character style records for one editor session"""

    def __init__(self, cells: Optional[Iterable[StyledChar]] = None):
        self.cells: List[StyledChar] = list(cells or [])

    @classmethod
    def from_text(cls, text: str, fmt: FormatState = DEFAULT_FORMAT) -> 'RunBuffer':
        return cls(StyledChar(char, fmt) for char in text)

    @classmethod
    def from_runs(cls, runs: Iterable[FormattedRun]) -> 'RunBuffer':
        return cls(StyledChar(char, run.format) for run in runs for char in run.text)

    @classmethod
    def from_tree(cls, node: Any, base: FormatState = DEFAULT_FORMAT) -> 'RunBuffer':
        """
        Build a buffer from a markup tree.
        Nodes are plain strings (text leaves) or dicts with 'tag', 'attributes'
        and 'children'; attributes override the inherited format and a 'br'
        tag contributes a newline.
        """
        buffer = cls()
        buffer._walk(node, base)
        return buffer

    def _walk(self, node: Any, inherited: FormatState):
        if isinstance(node, str):
            self.cells.extend(StyledChar(char, inherited) for char in node)
            return
        if not isinstance(node, dict):
            return

        fmt = inherited.patched(_tree_attributes(node.get('attributes') or {}))
        if str(node.get('tag', '')).lower() == 'br':
            self.cells.append(StyledChar('\n', fmt))
            return
        for child in node.get('children') or []:
            self._walk(child, fmt)

    def __len__(self) -> int:
        return len(self.cells)

    def __iter__(self):
        return iter(self.cells)

    def __getitem__(self, index: int) -> StyledChar:
        return self.cells[index]

    def plain_text(self) -> str:
        return ''.join(cell.char for cell in self.cells)

    def insert(self, index: int, text: str, fmt: FormatState) -> int:
        """Insert text with one format at index, returning the index after it"""
        index = max(0, min(index, len(self.cells)))
        new_cells = [StyledChar(char, fmt) for char in text]
        self.cells = self.cells[:index] + new_cells + self.cells[index:]
        return index + len(new_cells)

    def delete(self, start: int, end: int):
        """Remove characters in [start, end)"""
        start = max(0, start)
        if end <= start:
            return
        self.cells = self.cells[:start] + self.cells[end:]

    def set_format(self, index: int, fmt: FormatState):
        self.cells[index] = StyledChar(self.cells[index].char, fmt)

    def clear(self):
        self.cells = []


def _tree_attributes(attributes: Dict[str, Any]) -> Dict[str, Any]:
    """Read format fields from markup attributes ('true' strings count as set)"""
    patch = {}
    if attributes.get('color'):
        patch['color'] = attributes['color']
    for field in STYLE_FIELDS:
        value = attributes.get(field)
        if value is True or str(value).lower() == 'true':
            patch[field] = True
    return patch


def compress_runs(buffer: Iterable[StyledChar]) -> List[FormattedRun]:
    """Collapse characters into maximal same-format runs"""
    runs = []
    current_text = []
    current_format = None

    for cell in buffer:
        if current_text and cell.format == current_format:
            current_text.append(cell.char)
            continue
        if current_text:
            runs.append(FormattedRun(''.join(current_text), current_format))
        current_text = [cell.char]
        current_format = cell.format

    if current_text:
        runs.append(FormattedRun(''.join(current_text), current_format))

    return runs


class RangeSelection(NamedTuple):
    """Contiguous selection, end exclusive"""
    start: int
    end: int

    @property
    def collapsed(self) -> bool:
        return self.end <= self.start

    def indices(self, length: int) -> List[int]:
        if self.collapsed:
            return []
        return list(range(max(0, self.start), min(self.end, length)))


class IndexSelection:
    """Explicit, possibly discontiguous, set of selected character indices"""

    def __init__(self, indices: Optional[Iterable[int]] = None):
        self.selected: Set[int] = set(indices or [])
        self.anchor: Optional[int] = None

    @property
    def collapsed(self) -> bool:
        return not self.selected

    def select(self, index: int):
        """Select only this index and make it the anchor"""
        self.selected = {index}
        self.anchor = index

    def toggle(self, index: int):
        """Add or remove a single index, keeping the rest"""
        if index in self.selected:
            self.selected.discard(index)
        else:
            self.selected.add(index)
        self.anchor = index

    def extend_to(self, index: int):
        """Select the inclusive range between the anchor and index"""
        if self.anchor is None:
            self.select(index)
            return
        low, high = sorted((self.anchor, index))
        self.selected.update(range(low, high + 1))

    def clear(self):
        self.selected = set()
        self.anchor = None

    def indices(self, length: int) -> List[int]:
        return sorted(i for i in self.selected if 0 <= i < length)


def apply_format(buffer: RunBuffer, selection, patch: Dict[str, Any]) -> int:
    """
    Merge a partial format into every selected character.
    Matching fields are replaced, never blended. Returns the number of
    characters touched; an empty selection changes nothing.
    """
    if selection is None:
        return 0
    touched = 0
    for index in selection.indices(len(buffer)):
        cell = buffer[index]
        buffer.set_format(index, cell.format.patched(patch))
        touched += 1
    return touched


class EditorSession:
    """One editing session: its buffer, pending format, selection and events"""

    def __init__(self, text: str = '', fmt: FormatState = DEFAULT_FORMAT):
        self.pending_format = fmt
        self.buffer = RunBuffer.from_text(text, fmt)
        self.selection = None
        self.click_event = None
        self.hover_event = None

    # Typing

    def type_text(self, text: str, index: Optional[int] = None) -> int:
        """Insert text at index (end by default) using the pending format"""
        if index is None:
            index = len(self.buffer)
        return self.buffer.insert(index, text, self.pending_format)

    def set_text(self, text: str):
        """Replace the whole buffer with text in the pending format"""
        self.buffer = RunBuffer.from_text(text, self.pending_format)
        self.selection = None

    def delete(self, start: int, end: int):
        """Remove characters in [start, end); the selection no longer applies"""
        self.buffer.delete(start, end)
        self.selection = None

    # Selection

    def select_range(self, start: int, end: int):
        self.selection = RangeSelection(start, end)

    def select_index(self, index: int, extend: bool = False, toggle: bool = False):
        """Click selection: plain click, shift-extend from the anchor, or toggle"""
        if not isinstance(self.selection, IndexSelection):
            self.selection = IndexSelection()
        if extend:
            self.selection.extend_to(index)
        elif toggle:
            self.selection.toggle(index)
        else:
            self.selection.select(index)

    def clear_selection(self):
        self.selection = None

    # Formatting

    def toggle_format(self, field: str) -> bool:
        """Flip a style flag on the pending format and on the selection"""
        if field not in STYLE_FIELDS:
            raise ValueError(f"Unknown style: {field}")
        value = not getattr(self.pending_format, field)
        self.pending_format = self.pending_format.patched({field: value})
        apply_format(self.buffer, self.selection, {field: value})
        return value

    def set_color(self, color: str):
        self.pending_format = self.pending_format.patched({'color': color})
        apply_format(self.buffer, self.selection, {'color': color})

    def apply(self, patch: Dict[str, Any]) -> int:
        """Apply an explicit patch to the current selection only"""
        return apply_format(self.buffer, self.selection, patch)

    # Output

    def runs(self) -> List[FormattedRun]:
        return compress_runs(self.buffer)

    def plain_text(self) -> str:
        return self.buffer.plain_text()

    def clear(self):
        self.buffer = RunBuffer()
        self.selection = None
        self.click_event = None
        self.hover_event = None


_SECTION_CODE = re.compile(r'§([0-9a-fk-or])', re.IGNORECASE)


def parse_section_codes(text: str) -> RunBuffer:
    """
    Read a section-sign coded string into a buffer.
    A color code resets styles, as in game; §r returns to the default format.
    """
    buffer = RunBuffer()
    fmt = DEFAULT_FORMAT
    position = 0

    for match in _SECTION_CODE.finditer(text):
        if match.start() > position:
            buffer.insert(len(buffer), text[position:match.start()], fmt)
        code = match.group(1).lower()
        if code in CODE_COLORS:
            fmt = FormatState(color=CODE_COLORS[code])
        elif code == RESET_CODE:
            fmt = DEFAULT_FORMAT
        elif code in CODE_FORMATS:
            fmt = fmt.patched({CODE_FORMATS[code]: True})
        position = match.end()

    if position < len(text):
        buffer.insert(len(buffer), text[position:], fmt)

    return buffer
