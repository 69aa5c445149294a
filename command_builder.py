"""
Command Builder - Assemble give/summon/enchant/effect/potion/text commands for a target version
"""

import json
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

from nbtlib import Byte, Compound, Double, Float, Int, IntArray, List as TagList, Long, Short, String

from legacy_ids import LegacyIdMapper, strip_namespace
from rich_text import DEFAULT_FORMAT, FormattedRun, RunBuffer, compress_runs, parse_section_codes
from text_component import ClickEvent, HoverEvent, TextComponentSerializer, quote_nbt_string
from version_compat import is_feature_available, resolve_group

DEFAULT_VERSION = '1.21'
DEFAULT_TARGET = '@p'
DEFAULT_POSITION = '~ ~ ~'
DEFAULT_DROP_CHANCE = 0.085
# Longest effect duration accepted before the infinite keyword existed
MAX_EFFECT_SECONDS = 1000000

ARMOR_SLOTS = ['feet', 'legs', 'chest', 'head']
HAND_SLOTS = ['mainhand', 'offhand']

OPERATION_CODES = {
    'add_value': 0,
    'add_multiplied_base': 1,
    'add_multiplied_total': 2,
}

ENTITY_FLAGS = ['NoAI', 'Silent', 'Invulnerable', 'PersistenceRequired', 'Glowing', 'IsBaby', 'CanBreakDoors']

COMPONENT_GROUPS = ('component', 'latest')


class Enchantment(NamedTuple):
    id: str
    level: int = 1


class AttributeModifier(NamedTuple):
    id: str
    amount: float
    operation: str = 'add_value'
    slot: str = 'mainhand'


class EntityAttribute(NamedTuple):
    id: str
    base: float


class EquipmentItem(NamedTuple):
    item: str
    enchantments: Tuple[Enchantment, ...] = ()
    drop_chance: Optional[float] = None
    count: int = 1


class EffectRow(NamedTuple):
    id: str
    duration: Any = 30
    level: int = 1
    hide_particles: bool = False


def namespaced(identifier: str) -> str:
    """Add minecraft: prefix if no namespace is present"""
    if ':' in identifier:
        return identifier
    return f'minecraft:{identifier}'


def snbt(tag) -> str:
    return tag.snbt(compact=True)


def compound_fragment(entries: List[Tuple[str, str]]) -> str:
    """Join already-serialized key/value pairs into one compound"""
    return '{' + ','.join(f'{key}:{value}' for key, value in entries) + '}'


def to_rows(values: Any, row_type) -> List[Any]:
    """Normalize rows given as tuples, dicts or row instances"""
    rows = []
    if not values:
        return rows
    if isinstance(values, dict) and row_type in (EntityAttribute, Enchantment):
        # {id: level} / {id: base} shorthand
        return [row_type(key, value) for key, value in values.items()]
    for value in values:
        if isinstance(value, row_type):
            rows.append(value)
        elif isinstance(value, str):
            rows.append(row_type(value))
        elif isinstance(value, dict):
            rows.append(row_type(**{key: value[key] for key in row_type._fields if key in value}))
        else:
            rows.append(row_type(*value))
    return rows


def to_runs(value: Any, fmt: Optional[Dict[str, Any]] = None) -> List[FormattedRun]:
    """
    Normalize text input to compressed runs.
    Accepts a plain string (section sign codes are read), FormattedRun items
    or dicts with 'text' plus format fields.
    """
    if not value:
        return []
    if isinstance(value, str):
        if '§' in value:
            return compress_runs(parse_section_codes(value))
        return [FormattedRun(value, DEFAULT_FORMAT.patched(fmt or {}))]

    runs = []
    for item in value:
        if isinstance(item, FormattedRun):
            runs.append(item)
        elif isinstance(item, dict):
            patch = {key: val for key, val in item.items() if key != 'text'}
            runs.append(FormattedRun(item.get('text', ''), DEFAULT_FORMAT.patched(patch)))
        else:
            runs.append(FormattedRun(item[0], DEFAULT_FORMAT.patched(item[1] if len(item) > 1 else {})))
    return compress_runs(RunBuffer.from_runs(run for run in runs if run.text))


def to_click(value: Any) -> Optional[ClickEvent]:
    if not value or isinstance(value, ClickEvent):
        return value or None
    return ClickEvent(value['action'], value['value'])


def to_hover(value: Any) -> Optional[HoverEvent]:
    if not value or isinstance(value, HoverEvent):
        return value or None
    return HoverEvent(value['action'], value['contents'])


class DataEncoders:
    """Encoders for item and entity data that differ by format group"""

    def __init__(self, mapper: LegacyIdMapper, text: TextComponentSerializer):
        self.mapper = mapper
        self.text = text

    # Text

    def custom_name(self, runs: List[FormattedRun], group: str) -> str:
        """Name value embedded in NBT or a component"""
        if group == 'legacy':
            return snbt(String(self.text.serialize(runs, group)))
        serialized = self.text.serialize(runs, group, context='custom_name')
        if group == 'latest':
            return serialized
        return quote_nbt_string(serialized)

    def lore(self, lines: List[List[FormattedRun]], group: str) -> str:
        if group == 'latest':
            return '[' + ','.join(self.text.serialize(line, group) for line in lines) + ']'
        return snbt(TagList[String]([String(self.text.serialize(line, group)) for line in lines]))

    # Enchantments

    def enchantment_component(self, enchantments: List[Enchantment], group: str, stored: bool = False) -> str:
        """enchantments= component for the component groups"""
        key = 'stored_enchantments' if stored else 'enchantments'
        if group == 'latest':
            levels = {strip_namespace(e.id): e.level for e in enchantments}
            return f'{key}={json.dumps(levels, separators=(",", ":"))}'
        levels = Compound({namespaced(e.id): Int(e.level) for e in enchantments})
        return f'{key}={snbt(Compound({"levels": levels}))}'

    def enchantment_tag(self, enchantments: List[Enchantment], group: str, stored: bool = False) -> Tuple[str, TagList]:
        """Enchantment list tag for the NBT and legacy groups"""
        entries = TagList[Compound]()
        for enchantment in enchantments:
            if group == 'legacy':
                ench_id = Short(self.mapper.enchantment_id(enchantment.id))
            else:
                ench_id = String(namespaced(enchantment.id))
            entries.append(Compound({'id': ench_id, 'lvl': Short(enchantment.level)}))

        if stored:
            return 'StoredEnchantments', entries
        return ('ench' if group == 'legacy' else 'Enchantments'), entries

    def item_entry(self, item: EquipmentItem) -> Compound:
        """{id, count} item, with an enchantments component only when enchanted"""
        entry = Compound({'id': String(namespaced(item.item)), 'count': Int(item.count)})
        if item.enchantments:
            levels = Compound({namespaced(e.id): Int(e.level) for e in item.enchantments})
            entry['components'] = Compound({'minecraft:enchantments': Compound({'levels': levels})})
        return entry

    # Attributes

    def attribute_modifiers(self, modifiers: List[AttributeModifier], group: str) -> str:
        """Item attribute modifiers as a component (component groups) or NBT tag value"""
        entries = TagList[Compound]()
        # Modifier ids only need to be unique within one command
        for number, modifier in enumerate(modifiers, start=1):
            name = _attribute_path(modifier.id)
            if group in COMPONENT_GROUPS:
                if group == 'latest' and name.startswith('generic.'):
                    name = name[len('generic.'):]
                entries.append(Compound({
                    'type': String(f'minecraft:{name}'),
                    'amount': Double(modifier.amount),
                    'operation': String(modifier.operation),
                    'slot': String(modifier.slot),
                    'id': String(f'minecraft:modifier_{number}'),
                }))
                continue

            if group == 'legacy':
                name = self.mapper.attribute_name(name)
            entry = Compound({
                'AttributeName': String(name),
                'Name': String(name),
                'Amount': Double(modifier.amount),
                'Operation': Int(OPERATION_CODES.get(modifier.operation, 0)),
            })
            if group == 'nbt-modern':
                entry['UUID'] = IntArray([0, 0, 0, 0])
            else:
                entry['UUIDMost'] = Long(0)
                entry['UUIDLeast'] = Long(0)
            entry['Slot'] = String(modifier.slot)
            entries.append(entry)
        return snbt(entries)

    def entity_attributes(self, attributes: List[EntityAttribute], group: str) -> Tuple[str, str]:
        """Base attribute list for summoned entities"""
        entries = TagList[Compound]()
        for attribute in attributes:
            name = _attribute_path(attribute.id)
            if group == 'latest':
                short_name = name[len('generic.'):] if name.startswith('generic.') else name
                entries.append(Compound({'id': String(f'minecraft:{short_name}'), 'base': Double(attribute.base)}))
            elif group == 'component':
                entries.append(Compound({'id': String(f'minecraft:{name}'), 'base': Double(attribute.base)}))
            else:
                if group == 'legacy':
                    name = self.mapper.attribute_name(name)
                entries.append(Compound({'Name': String(name), 'Base': Double(attribute.base)}))
        return ('attributes' if group == 'latest' else 'Attributes'), snbt(entries)

    # Equipment

    def equipment(self, equipment: Dict[str, EquipmentItem], group: str) -> List[Tuple[str, str]]:
        """Equipment entries: a slot map for latest, ordered armor/hand lists before"""
        if not equipment:
            return []

        if group == 'latest':
            items = Compound()
            chances = Compound()
            for slot in HAND_SLOTS + list(reversed(ARMOR_SLOTS)):
                item = equipment.get(slot)
                if item:
                    items[slot] = self.item_entry(item)
                    chances[slot] = Float(_drop_chance(item))
            return [('equipment', snbt(items)), ('drop_chances', snbt(chances)),
                    ('CanPickUpLoot', snbt(Byte(0)))]

        entries = []
        for tag_name, chance_name, slots in (('ArmorItems', 'ArmorDropChances', ARMOR_SLOTS),
                                             ('HandItems', 'HandDropChances', HAND_SLOTS)):
            items = TagList[Compound]()
            chances = TagList[Float]()
            for slot in slots:
                item = equipment.get(slot)
                items.append(self.item_entry(item) if item else Compound())
                chances.append(Float(_drop_chance(item)))
            entries.append((tag_name, snbt(items)))
            entries.append((chance_name, snbt(chances)))
        entries.append(('CanPickUpLoot', snbt(Byte(0))))
        return entries

    # Effects

    def effect_entries(self, effects: List[EffectRow], group: str) -> TagList:
        """Status effect compounds for entities and potions"""
        entries = TagList[Compound]()
        for effect in effects:
            ticks = Int(_effect_ticks(effect.duration))
            amplifier = Byte(_signed_byte(effect.level - 1))
            if group in COMPONENT_GROUPS:
                entry = Compound({'id': String(namespaced(effect.id)), 'amplifier': amplifier, 'duration': ticks})
                if effect.hide_particles:
                    entry['show_particles'] = Byte(0)
            else:
                entry = Compound({'Id': Byte(self.mapper.effect_id(effect.id)), 'Amplifier': amplifier,
                                  'Duration': ticks})
                if effect.hide_particles:
                    entry['ShowParticles'] = Byte(0)
            entries.append(entry)
        return entries


def _attribute_path(identifier: str) -> str:
    """Attribute name without namespace, with generic. added to bare names"""
    name = strip_namespace(identifier)
    if '.' not in name:
        name = f'generic.{name}'
    return name


def _drop_chance(item: Optional[EquipmentItem]) -> float:
    if item is None or item.drop_chance is None:
        return DEFAULT_DROP_CHANCE
    return item.drop_chance


def _signed_byte(value: int) -> int:
    """Wrap 0..255 into the signed byte range the game reads amplifiers from"""
    return ((int(value) + 128) % 256) - 128


def _title_times(times: Any) -> List[Any]:
    """Fade in, stay and fade out ticks from a list or a '10 70 20' string"""
    if isinstance(times, str):
        times = times.replace(',', ' ').split()
    values = list(times)
    if len(values) != 3:
        raise ValueError(f"Title times need fade in, stay and fade out: {times}")
    return values


def _effect_ticks(duration: Any) -> int:
    if duration in (None, 'infinite'):
        return -1
    return int(duration) * 20


def _color_value(color: Any) -> Optional[int]:
    """Potion color as a decimal RGB integer (accepts #RRGGBB)"""
    if color is None or color == '':
        return None
    if isinstance(color, str):
        return int(color.lstrip('#'), 16)
    return int(color)


class CommandBuilder:
    """Builds complete commands for a target version"""

    def __init__(self, silent: bool = True):
        self.silent = silent
        self.mapper = LegacyIdMapper(silent=silent)
        self.text = TextComponentSerializer()
        self.encoders = DataEncoders(self.mapper, self.text)

        # Register command builders
        self.command_handlers = {
            'give': self._build_give,
            'summon': self._build_summon,
            'enchant': self._build_enchant,
            'effect': self._build_effect,
            'potion': self._build_potion,
            'tellraw': self._build_tellraw,
            'title': self._build_title,
            'book': self._build_book,
        }

    def build_command(self, kind: str, params: Optional[Dict[str, Any]] = None, version: str = DEFAULT_VERSION) -> str:
        """Build one command of the given kind"""
        handler = self.command_handlers.get(kind)
        if handler is None:
            raise ValueError(f"Unknown command kind: {kind}")
        return handler(dict(params or {}), version or DEFAULT_VERSION)

    def _item_command(self, target: str, item: str, count: int, group: str,
                      components: List[str], tags: List[Tuple[str, str]], damage: int = 0) -> str:
        """Give command in the item syntax of the group"""
        if group in COMPONENT_GROUPS:
            suffix = f'[{",".join(components)}]' if components else ''
            return f'/give {target} {namespaced(item)}{suffix} {count}'
        if group == 'legacy':
            command = f'/give {target} {strip_namespace(item)} {count} {damage}'
            if tags:
                command += f' {compound_fragment(tags)}'
            return command
        suffix = compound_fragment(tags) if tags else ''
        return f'/give {target} {namespaced(item)}{suffix} {count}'

    def _build_give(self, params: Dict[str, Any], version: str) -> str:
        """Build give command"""
        group = resolve_group(version)
        target = params.get('target') or DEFAULT_TARGET
        item = params.get('item', 'minecraft:stone')
        count = params.get('count', 1)
        name = to_runs(params.get('name'), params.get('name_format'))
        lore = [to_runs(line) for line in params.get('lore') or []]
        enchantments = to_rows(params.get('enchantments'), Enchantment)
        modifiers = to_rows(params.get('attribute_modifiers'), AttributeModifier)
        damage = params.get('damage') or 0
        unbreakable = bool(params.get('unbreakable'))
        glint = params.get('glint')
        stored = strip_namespace(item) == 'enchanted_book'

        components = []
        tags = []
        if group in COMPONENT_GROUPS:
            if name:
                components.append(f'custom_name={self.encoders.custom_name(name, group)}')
            if lore:
                components.append(f'lore={self.encoders.lore(lore, group)}')
            if enchantments:
                components.append(self.encoders.enchantment_component(enchantments, group, stored))
            if unbreakable:
                components.append('unbreakable={}')
            if damage:
                components.append(f'damage={damage}')
            if modifiers:
                components.append(f'attribute_modifiers={self.encoders.attribute_modifiers(modifiers, group)}')
            if glint is not None:
                components.append(f'enchantment_glint_override={"true" if glint else "false"}')
            return self._item_command(target, item, count, group, components, tags)

        display = []
        if name:
            display.append(('Name', self.encoders.custom_name(name, group)))
        if lore:
            display.append(('Lore', self.encoders.lore(lore, group)))
        if display:
            tags.append(('display', compound_fragment(display)))
        if enchantments:
            tag_name, entries = self.encoders.enchantment_tag(enchantments, group, stored)
            tags.append((tag_name, snbt(entries)))
        if unbreakable:
            tags.append(('Unbreakable', snbt(Byte(1))))
        if damage and group != 'legacy':
            tags.append(('Damage', snbt(Int(damage))))
        if modifiers:
            tags.append(('AttributeModifiers', self.encoders.attribute_modifiers(modifiers, group)))
        if glint is not None and not self.silent:
            print(f"Glint override is not available for {version}, skipping")
        return self._item_command(target, item, count, group, components, tags, damage)

    def _build_summon(self, params: Dict[str, Any], version: str) -> str:
        """Build summon command"""
        group = resolve_group(version)
        entity = params.get('entity', 'minecraft:zombie')
        position = params.get('position') or DEFAULT_POSITION
        name = to_runs(params.get('name'), params.get('name_format'))
        flags = params.get('flags') or {}
        effects = to_rows(params.get('effects'), EffectRow)
        attributes = to_rows(params.get('attributes'), EntityAttribute)
        equipment = {
            slot: (value if isinstance(value, EquipmentItem) else to_rows([value], EquipmentItem)[0])
            for slot, value in (params.get('equipment') or {}).items() if value
        }
        for slot, item in equipment.items():
            equipment[slot] = item._replace(enchantments=tuple(to_rows(item.enchantments, Enchantment)))

        entries = []
        if name:
            entries.append(('CustomName', self.encoders.custom_name(name, group)))
            if params.get('name_visible', True):
                entries.append(('CustomNameVisible', snbt(Byte(1))))

        # Flags may be given as a list of names or a name -> bool map
        if not isinstance(flags, dict):
            flags = {flag: True for flag in flags}
        for flag in ENTITY_FLAGS:
            if flags.get(flag):
                entries.append((flag, snbt(Byte(1))))

        if effects:
            key = 'active_effects' if group in COMPONENT_GROUPS else 'ActiveEffects'
            entries.append((key, snbt(self.encoders.effect_entries(effects, group))))
        entries.extend(self.encoders.equipment(equipment, group))
        if attributes:
            entries.append(self.encoders.entity_attributes(attributes, group))

        if group == 'legacy':
            entity_id = self.mapper.entity_id(entity)
        else:
            entity_id = namespaced(entity)
        command = f'/summon {entity_id} {position}'
        if entries:
            command += f' {compound_fragment(entries)}'
        return command

    def _build_enchant(self, params: Dict[str, Any], version: str) -> str:
        """Build enchant command (or a give of an enchanted item when 'item' is set)"""
        if params.get('item'):
            return self._build_give(params, version)

        group = resolve_group(version)
        target = params.get('target') or DEFAULT_TARGET
        enchantment = to_rows(params.get('enchantments') or [(params.get('id', 'sharpness'), params.get('level', 1))],
                              Enchantment)[0]
        if group == 'legacy':
            return f'/enchant {target} {self.mapper.enchantment_id(enchantment.id)} {enchantment.level}'
        return f'/enchant {target} {namespaced(enchantment.id)} {enchantment.level}'

    def _build_effect(self, params: Dict[str, Any], version: str) -> str:
        """Build effect give/clear command"""
        group = resolve_group(version)
        target = params.get('target') or DEFAULT_TARGET
        effect_id = params.get('id')

        if params.get('clear'):
            if group == 'legacy':
                return f'/effect {target} clear'
            if effect_id:
                return f'/effect clear {target} {namespaced(effect_id)}'
            return f'/effect clear {target}'

        row = EffectRow(effect_id or 'speed', params.get('duration', 30), params.get('level', 1),
                        bool(params.get('hide_particles')))
        duration = row.duration
        if duration in (None, 'infinite'):
            if is_feature_available(version, 'effect', 'infinite_duration'):
                duration = 'infinite'
            else:
                duration = MAX_EFFECT_SECONDS
        amplifier = row.level - 1

        if group == 'legacy':
            command = f'/effect {target} {self.mapper.effect_id(row.id)} {duration} {amplifier}'
        else:
            command = f'/effect give {target} {namespaced(row.id)} {duration} {amplifier}'
        if row.hide_particles:
            command += ' true'
        return command

    def _build_potion(self, params: Dict[str, Any], version: str) -> str:
        """Build a give command for a potion with custom effects"""
        group = resolve_group(version)
        target = params.get('target') or DEFAULT_TARGET
        item = params.get('item', 'minecraft:potion')
        count = params.get('count', 1)
        effects = to_rows(params.get('effects'), EffectRow)
        color = _color_value(params.get('color'))
        name = to_runs(params.get('name'), params.get('name_format'))
        base_potion = params.get('potion')

        if group in COMPONENT_GROUPS:
            contents = []
            if base_potion:
                contents.append(('potion', snbt(String(namespaced(base_potion)))))
            if effects:
                contents.append(('custom_effects', snbt(self.encoders.effect_entries(effects, group))))
            if color is not None:
                contents.append(('custom_color', snbt(Int(color))))
            components = [f'potion_contents={compound_fragment(contents)}']
            if name:
                components.append(f'custom_name={self.encoders.custom_name(name, group)}')
            return self._item_command(target, item, count, group, components, [])

        tags = []
        if base_potion:
            tags.append(('Potion', snbt(String(namespaced(base_potion)))))
        if effects:
            tags.append(('CustomPotionEffects', snbt(self.encoders.effect_entries(effects, group))))
        if color is not None:
            tags.append(('CustomPotionColor', snbt(Int(color))))
        if name:
            tags.append(('display', compound_fragment([('Name', self.encoders.custom_name(name, group))])))
        return self._item_command(target, item, count, group, [], tags)

    def _message_group(self, version: str) -> str:
        # tellraw and title always took JSON text, even in 1.12
        group = resolve_group(version)
        return 'nbt-legacy' if group == 'legacy' else group

    def _build_tellraw(self, params: Dict[str, Any], version: str) -> str:
        """Build tellraw command"""
        group = self._message_group(version)
        target = params.get('target') or '@a'
        runs = to_runs(params.get('runs') or params.get('text'), params.get('format'))
        message = self.text.serialize(runs, group, click=to_click(params.get('click')),
                                      hover=to_hover(params.get('hover')))
        return f'/tellraw {target} {message}'

    def _build_title(self, params: Dict[str, Any], version: str) -> str:
        """Build title command, preceded by a times line when timings are given"""
        group = self._message_group(version)
        target = params.get('target') or '@a'
        mode = params.get('mode', 'title')
        if mode not in ('title', 'subtitle', 'actionbar'):
            raise ValueError(f"Unknown title mode: {mode}")

        lines = []
        times = params.get('times')
        if times:
            fade_in, stay, fade_out = _title_times(times)
            lines.append(f'/title {target} times {fade_in} {stay} {fade_out}')
        runs = to_runs(params.get('runs') or params.get('text'), params.get('format'))
        lines.append(f'/title {target} {mode} {self.text.serialize(runs, group)}')
        return '\n'.join(lines)

    def _build_book(self, params: Dict[str, Any], version: str) -> str:
        """Build a give command for a written book"""
        group = resolve_group(version)
        text_group = self._message_group(version)
        target = params.get('target') or DEFAULT_TARGET
        count = params.get('count', 1)
        title = params.get('title') or 'Book'
        author = params.get('author') or 'Unknown'

        pages = [self.text.serialize(to_runs(page), text_group) for page in params.get('pages') or []]
        if group == 'latest':
            page_list = '[' + ','.join(pages) + ']'
        else:
            page_list = snbt(TagList[String]([String(page) for page in pages]))

        content = compound_fragment([
            ('pages', page_list),
            ('title', snbt(String(title))),
            ('author', snbt(String(author))),
        ])
        if group in COMPONENT_GROUPS:
            return self._item_command(target, 'written_book', count, group, [f'written_book_content={content}'], [])
        return self._item_command(target, 'written_book', count, group, [],
                                  [('pages', page_list), ('title', snbt(String(title))),
                                   ('author', snbt(String(author)))])
