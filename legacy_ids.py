from typing import Dict, Optional

# Enchantment numeric IDs used up to 1.12.2
ENCHANT_ID_MAP = {
    0: 'protection', 1: 'fire_protection', 2: 'feather_falling',
    3: 'blast_protection', 4: 'projectile_protection', 5: 'respiration',
    6: 'aqua_affinity', 7: 'thorns', 8: 'depth_strider',
    9: 'frost_walker', 10: 'binding_curse',
    16: 'sharpness', 17: 'smite', 18: 'bane_of_arthropods',
    19: 'knockback', 20: 'fire_aspect', 21: 'looting',
    22: 'sweeping_edge', 32: 'efficiency', 33: 'silk_touch',
    34: 'unbreaking', 35: 'fortune', 48: 'power',
    49: 'punch', 50: 'flame', 51: 'infinity',
    61: 'luck_of_the_sea', 62: 'lure',
    65: 'loyalty', 66: 'impaling', 67: 'riptide', 68: 'channeling',
    70: 'mending', 71: 'vanishing_curse',
}

# Status effect numeric IDs (still used by the Id byte of pre-1.20.5 effect NBT)
EFFECT_ID_MAP = {
    1: 'speed', 2: 'slowness', 3: 'haste', 4: 'mining_fatigue',
    5: 'strength', 6: 'instant_health', 7: 'instant_damage', 8: 'jump_boost',
    9: 'nausea', 10: 'regeneration', 11: 'resistance', 12: 'fire_resistance',
    13: 'water_breathing', 14: 'invisibility', 15: 'blindness', 16: 'night_vision',
    17: 'hunger', 18: 'weakness', 19: 'poison', 20: 'wither',
    21: 'health_boost', 22: 'absorption', 23: 'saturation', 24: 'glowing',
    25: 'levitation', 26: 'luck', 27: 'unluck', 28: 'slow_falling',
    29: 'conduit_power', 30: 'dolphins_grace', 31: 'bad_omen', 32: 'hero_of_the_village',
    33: 'darkness',
}

# 1.12 attribute names were camelCase
LEGACY_ATTRIBUTE_NAMES = {
    'generic.max_health': 'generic.maxHealth',
    'generic.attack_damage': 'generic.attackDamage',
    'generic.attack_speed': 'generic.attackSpeed',
    'generic.movement_speed': 'generic.movementSpeed',
    'generic.knockback_resistance': 'generic.knockbackResistance',
    'generic.armor': 'generic.armor',
    'generic.armor_toughness': 'generic.armorToughness',
    'generic.follow_range': 'generic.followRange',
    'generic.luck': 'generic.luck',
    'zombie.spawn_reinforcements': 'zombie.spawnReinforcements',
    'horse.jump_strength': 'horse.jumpStrength',
}

# Entity IDs renamed by The Flattening (modern -> 1.12)
LEGACY_ENTITY_IDS = {
    'zombified_piglin': 'zombie_pigman',
    'evoker': 'evocation_illager',
    'vindicator': 'vindication_illager',
    'illusioner': 'illusion_illager',
    'snow_golem': 'snowman',
    'iron_golem': 'villager_golem',
    'end_crystal': 'ender_crystal',
    'experience_orb': 'xp_orb',
    'firework_rocket': 'fireworks_rocket',
    'eye_of_ender': 'eye_of_ender_signal',
    'evoker_fangs': 'evocation_fangs',
    'command_block_minecart': 'commandblock_minecart',
}


def strip_namespace(identifier: str) -> str:
    """Remove a leading minecraft: namespace"""
    if identifier.startswith('minecraft:'):
        return identifier[len('minecraft:'):]
    return identifier


class LegacyIdMapper:
    """Lookups between legacy numeric IDs and string identifiers"""

    def __init__(self, silent: bool = True):
        self.silent = silent
        self.tables = {
            'enchantment': ENCHANT_ID_MAP,
            'effect': EFFECT_ID_MAP,
        }
        self.reverse_tables = {
            kind: {name: number for number, name in table.items()}
            for kind, table in self.tables.items()
        }

    def numeric_id(self, kind: str, string_id: str) -> int:
        """Return the legacy numeric ID, or 0 when the ID has no legacy mapping"""
        name = strip_namespace(string_id)
        number = self.reverse_tables.get(kind, {}).get(name)
        if number is None:
            if not self.silent:
                print(f"No legacy {kind} ID for '{string_id}', using 0")
            return 0
        return number

    def string_id(self, kind: str, numeric: int) -> Optional[str]:
        """Return the string ID for a legacy numeric ID, or None"""
        try:
            return self.tables.get(kind, {}).get(int(numeric))
        except (TypeError, ValueError):
            return None

    def enchantment_id(self, string_id: str) -> int:
        return self.numeric_id('enchantment', string_id)

    def effect_id(self, string_id: str) -> int:
        return self.numeric_id('effect', string_id)

    def attribute_name(self, name: str) -> str:
        """Convert a modern attribute name to its 1.12 spelling"""
        clean = strip_namespace(name)
        if '.' not in clean:
            clean = f'generic.{clean}'
        return LEGACY_ATTRIBUTE_NAMES.get(clean, clean)

    def entity_id(self, entity: str) -> str:
        """Convert a modern entity ID to its 1.12 spelling (unknown IDs pass through)"""
        return LEGACY_ENTITY_IDS.get(strip_namespace(entity), strip_namespace(entity))

    def table(self, kind: str) -> Dict[int, str]:
        return dict(self.tables.get(kind, {}))
