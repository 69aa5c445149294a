import re
from typing import Dict, Optional, Tuple

from version_compat import group_features

# Declaration order matters: ties in nearest_palette_color go to the earlier entry
MC_COLORS = [
    {'id': 'black', 'hex': '#000000', 'code': '0'},
    {'id': 'dark_blue', 'hex': '#0000AA', 'code': '1'},
    {'id': 'dark_green', 'hex': '#00AA00', 'code': '2'},
    {'id': 'dark_aqua', 'hex': '#00AAAA', 'code': '3'},
    {'id': 'dark_red', 'hex': '#AA0000', 'code': '4'},
    {'id': 'dark_purple', 'hex': '#AA00AA', 'code': '5'},
    {'id': 'gold', 'hex': '#FFAA00', 'code': '6'},
    {'id': 'gray', 'hex': '#AAAAAA', 'code': '7'},
    {'id': 'dark_gray', 'hex': '#555555', 'code': '8'},
    {'id': 'blue', 'hex': '#5555FF', 'code': '9'},
    {'id': 'green', 'hex': '#55FF55', 'code': 'a'},
    {'id': 'aqua', 'hex': '#55FFFF', 'code': 'b'},
    {'id': 'red', 'hex': '#FF5555', 'code': 'c'},
    {'id': 'light_purple', 'hex': '#FF55FF', 'code': 'd'},
    {'id': 'yellow', 'hex': '#FFFF55', 'code': 'e'},
    {'id': 'white', 'hex': '#FFFFFF', 'code': 'f'},
]

COLOR_HEX: Dict[str, str] = {c['id']: c['hex'] for c in MC_COLORS}
COLOR_CODES: Dict[str, str] = {c['id']: c['code'] for c in MC_COLORS}
CODE_COLORS: Dict[str, str] = {c['code']: c['id'] for c in MC_COLORS}

# Section sign format codes
FORMAT_CODES = {
    'obfuscated': 'k',
    'bold': 'l',
    'strikethrough': 'm',
    'underlined': 'n',
    'italic': 'o',
}
CODE_FORMATS = {code: name for name, code in FORMAT_CODES.items()}
RESET_CODE = 'r'

DEFAULT_COLOR = 'white'

_HEX_PATTERN = re.compile(r'^#?([0-9a-fA-F]{2})([0-9a-fA-F]{2})([0-9a-fA-F]{2})$')


def is_hex_color(ref: str) -> bool:
    return isinstance(ref, str) and ref.startswith('#') and _HEX_PATTERN.match(ref) is not None


def is_known_color(ref: str) -> bool:
    """True for one of the 16 palette names or a #RRGGBB literal"""
    return ref in COLOR_HEX or is_hex_color(ref)


def parse_hex(hex_value: str) -> Optional[Tuple[int, int, int]]:
    """Parse #RRGGBB (leading # optional) to an RGB tuple"""
    match = _HEX_PATTERN.match(hex_value or '')
    if not match:
        return None
    return tuple(int(part, 16) for part in match.groups())


def color_hex(ref: str) -> Optional[str]:
    """Display value for a color reference, None when unknown"""
    if ref in COLOR_HEX:
        return COLOR_HEX[ref]
    if is_hex_color(ref):
        return ref.upper()
    return None


def nearest_palette_color(hex_value: str) -> str:
    """Closest palette color by Euclidean RGB distance"""
    target = parse_hex(hex_value)
    if target is None:
        return DEFAULT_COLOR

    closest = DEFAULT_COLOR
    best = None
    for color in MC_COLORS:
        rgb = parse_hex(color['hex'])
        distance = sum((a - b) ** 2 for a, b in zip(target, rgb))
        # Strict comparison keeps the first color on ties
        if best is None or distance < best:
            best = distance
            closest = color['id']
    return closest


def resolve_color(ref: Optional[str], group: str) -> Optional[str]:
    """
    Color value to emit for a format group.
    Unknown references and the default color resolve to None (field omitted).
    Hex literals are downsampled when the group has no hex color support.
    """
    if not ref or ref == DEFAULT_COLOR:
        return None
    if ref in COLOR_HEX:
        return ref
    if is_hex_color(ref):
        if 'hex_colors' in group_features(group):
            return ref
        nearest = nearest_palette_color(ref)
        return None if nearest == DEFAULT_COLOR else nearest
    return None


def section_code(color_name: str) -> str:
    """Section sign color code for a palette color (white when unknown)"""
    return COLOR_CODES.get(color_name, COLOR_CODES[DEFAULT_COLOR])
