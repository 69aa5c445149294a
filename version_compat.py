"""
Version Compatibility - Map Minecraft version strings to command format groups
"""

import re
from typing import Dict, List, Optional

# Ordered oldest to newest
GROUP_ORDER = ['legacy', 'nbt-legacy', 'nbt-modern', 'component', 'latest']

# Lower bound (inclusive) of each group, newest first
GROUP_BOUNDS = [
    ('1.21', 'latest'),
    ('1.20.5', 'component'),
    ('1.16', 'nbt-modern'),
    ('1.13', 'nbt-legacy'),
]

MC_VERSIONS = [
    {'value': '1.21', 'label': '1.21.x (latest)', 'group': 'latest'},
    {'value': '1.20.5', 'label': '1.20.5 - 1.20.6', 'group': 'component'},
    {'value': '1.20', 'label': '1.20 - 1.20.4', 'group': 'nbt-modern'},
    {'value': '1.19', 'label': '1.19.x', 'group': 'nbt-modern'},
    {'value': '1.18', 'label': '1.18.x', 'group': 'nbt-modern'},
    {'value': '1.17', 'label': '1.17.x', 'group': 'nbt-modern'},
    {'value': '1.16', 'label': '1.16.x', 'group': 'nbt-modern'},
    {'value': '1.15', 'label': '1.15.x', 'group': 'nbt-legacy'},
    {'value': '1.14', 'label': '1.14.x', 'group': 'nbt-legacy'},
    {'value': '1.13', 'label': '1.13.x (The Flattening)', 'group': 'nbt-legacy'},
    {'value': '1.12', 'label': '1.12.x (legacy)', 'group': 'legacy'},
]

VERSION_GROUPS = {
    'latest': {
        'label': '1.21+ (components, snake_case events)',
        'features': {'component', 'snake_case_events', 'hex_colors', 'string_ids',
                     'snbt_text', 'simplified_enchantments', 'equipment_map'},
    },
    'component': {
        'label': '1.20.5-1.20.6 (components introduced)',
        'features': {'component', 'camelCase_events', 'hex_colors', 'string_ids'},
    },
    'nbt-modern': {
        'label': '1.16-1.20.4 (modern NBT)',
        'features': {'nbt', 'camelCase_events', 'hex_colors', 'string_ids'},
    },
    'nbt-legacy': {
        'label': '1.13-1.15 (NBT)',
        'features': {'nbt', 'camelCase_events', 'string_ids'},
    },
    'legacy': {
        'label': '1.12.x and older (legacy)',
        'features': {'legacy_nbt', 'numeric_ids', 'data_values', 'ench_tag'},
    },
}

VERSION_NOTES = {
    'latest': 'Item components, click_event/hover_event (snake_case), SNBT text',
    'component': 'Item components introduced, clickEvent/hoverEvent',
    'nbt-modern': 'NBT tags, hex colors, clickEvent/hoverEvent',
    'nbt-legacy': 'NBT tags, 16 palette colors only',
    'legacy': 'Numeric IDs and data values, ench tag, plain names',
}

# Per-command feature availability, bounds are inclusive
COMMAND_FEATURES = {
    'give': {
        'component_format': {'min': '1.20.5'},
        'nbt_format': {'min': '1.13', 'max': '1.20.4'},
        'data_values': {'max': '1.12.2'},
        'numeric_ids': {'max': '1.12.2'},
    },
    'summon': {
        'snake_case_ids': {'min': '1.13'},
        'strict_json_names': {'min': '1.13'},
    },
    'enchant': {
        'enchantments_component': {'min': '1.20.5'},
        'enchantments_tag': {'min': '1.13', 'max': '1.20.4'},
        'ench_tag': {'max': '1.12.2'},
        'string_ids': {'min': '1.13'},
        'numeric_ids': {'max': '1.12.2'},
    },
    'effect': {
        'give_clear_subcommand': {'min': '1.13'},
        'string_ids': {'min': '1.13'},
        'numeric_ids': {'max': '1.12.2'},
        'infinite_duration': {'min': '1.19.4'},
    },
    'text': {
        'snake_case_events': {'min': '1.21'},
        'camel_case_events': {'max': '1.20.6'},
        'hex_colors': {'min': '1.16'},
        'strict_json': {'min': '1.13'},
    },
    'title': {
        'available': {'min': '1.8'},
        'times_subcommand': {'min': '1.8'},
    },
}

_LEADING_INT = re.compile(r'\d+')


def _parse_version(version: str) -> List[int]:
    """Split a dotted version into integers; non-numeric parts read as 0"""
    parts = []
    for piece in str(version).split('.'):
        match = _LEADING_INT.match(piece.strip())
        parts.append(int(match.group()) if match else 0)
    return parts


def compare_versions(a: str, b: str) -> int:
    """Compare two dotted versions, returning -1, 0 or 1"""
    pa = _parse_version(a)
    pb = _parse_version(b)
    for i in range(max(len(pa), len(pb))):
        na = pa[i] if i < len(pa) else 0
        nb = pb[i] if i < len(pb) else 0
        if na > nb:
            return 1
        if na < nb:
            return -1
    return 0


def is_version_in_range(version: str, minimum: Optional[str] = None, maximum: Optional[str] = None) -> bool:
    if minimum is not None and compare_versions(version, minimum) < 0:
        return False
    if maximum is not None and compare_versions(version, maximum) > 0:
        return False
    return True


def resolve_group(version: str) -> str:
    """Resolve a version string to its format group (unparsable -> legacy)"""
    for lower_bound, group in GROUP_BOUNDS:
        if compare_versions(version, lower_bound) >= 0:
            return group
    return 'legacy'


def group_rank(group: str) -> int:
    """Position of a group in the oldest-to-newest order"""
    return GROUP_ORDER.index(group)


def group_features(group: str) -> set:
    info = VERSION_GROUPS.get(group)
    return set(info['features']) if info else set()


def supports_feature(version: str, feature: str) -> bool:
    """Check whether the version's group carries a feature flag"""
    return feature in VERSION_GROUPS[resolve_group(version)]['features']


def is_feature_available(version: str, command: str, feature: str) -> bool:
    """Check a per-command feature against its version bounds"""
    info = COMMAND_FEATURES.get(command, {}).get(feature)
    if not info:
        return False
    return is_version_in_range(version, info.get('min'), info.get('max'))


def version_note(version: str) -> str:
    return VERSION_NOTES.get(resolve_group(version), '')


def versions_by_group() -> Dict[str, List[dict]]:
    """Selectable versions grouped by format group, newest group first"""
    grouped = {}
    for group in reversed(GROUP_ORDER):
        grouped[group] = [v for v in MC_VERSIONS if v['group'] == group]
    return grouped
