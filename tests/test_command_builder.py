import pytest
from nbtlib import parse_nbt

from command_builder import (
    AttributeModifier,
    CommandBuilder,
    Enchantment,
    EquipmentItem,
    compound_fragment,
    namespaced,
    to_rows,
    to_runs,
)
from rich_text import DEFAULT_FORMAT, FormatState, FormattedRun

SHARPNESS = {'item': 'minecraft:diamond_sword', 'enchantments': [{'id': 'sharpness', 'level': 5}]}


@pytest.fixture
def builder():
    return CommandBuilder()


def nbt_part(command):
    """Outermost NBT compound of a command"""
    return parse_nbt(command[command.index("{"):command.rindex("}") + 1])


class TestHelpers:
    def test_namespaced(self):
        assert namespaced('stone') == 'minecraft:stone'
        assert namespaced('minecraft:stone') == 'minecraft:stone'
        assert namespaced('mod:thing') == 'mod:thing'

    def test_compound_fragment(self):
        assert compound_fragment([('a', '1b'), ('b', '"x"')]) == '{a:1b,b:"x"}'
        assert compound_fragment([]) == '{}'

    def test_to_rows(self):
        assert to_rows([{'id': 'sharpness', 'level': 5}], Enchantment) == [Enchantment('sharpness', 5)]
        assert to_rows([('smite', 2)], Enchantment) == [Enchantment('smite', 2)]
        assert to_rows({'looting': 3}, Enchantment) == [Enchantment('looting', 3)]
        assert to_rows(['stone'], EquipmentItem) == [EquipmentItem('stone')]
        assert to_rows(None, Enchantment) == []

    def test_to_runs(self):
        assert to_runs('') == []
        assert to_runs('Hi', {'color': 'red'}) == [FormattedRun('Hi', FormatState(color='red'))]
        assert to_runs('§6Gold') == [FormattedRun('Gold', FormatState(color='gold'))]
        assert to_runs([{'text': 'A', 'bold': True}, {'text': 'B', 'bold': True}, ['C']]) == [
            FormattedRun('AB', FormatState(bold=True)),
            FormattedRun('C', DEFAULT_FORMAT),
        ]


class TestDispatch:
    def test_unknown_kind(self, builder):
        with pytest.raises(ValueError):
            builder.build_command('teleport', {}, '1.21')

    def test_default_version_is_latest(self, builder):
        assert builder.build_command('give', SHARPNESS) == \
            '/give @p minecraft:diamond_sword[enchantments={"sharpness":5}] 1'


class TestGive:
    def test_enchantments_latest(self, builder):
        assert builder.build_command('give', SHARPNESS, '1.21.5') == \
            '/give @p minecraft:diamond_sword[enchantments={"sharpness":5}] 1'

    def test_enchantments_component(self, builder):
        assert builder.build_command('give', SHARPNESS, '1.20.6') == \
            '/give @p minecraft:diamond_sword[enchantments={levels:{"minecraft:sharpness":5}}] 1'

    def test_enchantments_nbt(self, builder):
        assert builder.build_command('give', SHARPNESS, '1.20') == \
            '/give @p minecraft:diamond_sword{Enchantments:[{id:"minecraft:sharpness",lvl:5s}]} 1'

    def test_enchantments_legacy(self, builder):
        assert builder.build_command('give', SHARPNESS, '1.12') == \
            '/give @p diamond_sword 1 0 {ench:[{id:16s,lvl:5s}]}'

    def test_unbreakable_and_count(self, builder):
        params = dict(SHARPNESS, unbreakable=True, count=2, target='@a')
        assert builder.build_command('give', params, '1.21') == \
            '/give @a minecraft:diamond_sword[enchantments={"sharpness":5},unbreakable={}] 2'
        assert 'Unbreakable:1b' in builder.build_command('give', params, '1.16')

    def test_plain_item(self, builder):
        assert builder.build_command('give', {'item': 'stone'}, '1.21') == '/give @p minecraft:stone 1'
        assert builder.build_command('give', {'item': 'stone'}, '1.19') == '/give @p minecraft:stone 1'
        assert builder.build_command('give', {'item': 'stone'}, '1.12') == '/give @p stone 1 0'

    def test_enchanted_book_uses_stored_enchantments(self, builder):
        params = {'item': 'enchanted_book', 'enchantments': [('mending', 1)]}
        assert 'stored_enchantments={"mending":1}' in builder.build_command('give', params, '1.21')
        assert 'StoredEnchantments:[{id:"minecraft:mending",lvl:1s}]' in builder.build_command('give', params, '1.18')
        assert 'StoredEnchantments:[{id:70s,lvl:1s}]' in builder.build_command('give', params, '1.12')

    def test_custom_name_and_lore(self, builder):
        params = {'item': 'diamond_sword', 'name': 'Sword', 'lore': ['line one']}
        assert builder.build_command('give', params, '1.21') == \
            '/give @p minecraft:diamond_sword[custom_name={text:"Sword"},lore=[{text:"line one"}]] 1'
        assert builder.build_command('give', params, '1.20.5') == \
            '/give @p minecraft:diamond_sword[custom_name=\'{"text":"Sword"}\',lore=[\'{"text":"line one"}\']] 1'
        assert builder.build_command('give', params, '1.20') == \
            '/give @p minecraft:diamond_sword{display:{Name:\'{"text":"Sword"}\',Lore:[\'{"text":"line one"}\']}} 1'
        assert builder.build_command('give', params, '1.12') == \
            '/give @p diamond_sword 1 0 {display:{Name:"Sword",Lore:["line one"]}}'

    def test_damage(self, builder):
        assert builder.build_command('give', {'item': 'bow', 'damage': 10}, '1.21') == \
            '/give @p minecraft:bow[damage=10] 1'
        assert builder.build_command('give', {'item': 'bow', 'damage': 10}, '1.17') == \
            '/give @p minecraft:bow{Damage:10} 1'
        assert builder.build_command('give', {'item': 'wool', 'damage': 14}, '1.12') == '/give @p wool 1 14'

    def test_glint_override(self, builder):
        params = {'item': 'stick', 'glint': True}
        assert builder.build_command('give', params, '1.21') == \
            '/give @p minecraft:stick[enchantment_glint_override=true] 1'
        assert builder.build_command('give', params, '1.20') == '/give @p minecraft:stick 1'

    def test_attribute_modifiers_components(self, builder):
        params = {'item': 'diamond_sword', 'attribute_modifiers': [
            {'id': 'generic.attack_damage', 'amount': 5, 'operation': 'add_value', 'slot': 'mainhand'},
            AttributeModifier('movement_speed', 0.1, 'add_multiplied_base', 'mainhand'),
        ]}
        latest = builder.build_command('give', params, '1.21')
        assert '{type:"minecraft:attack_damage",amount:5.0d,operation:"add_value",slot:"mainhand",' \
               'id:"minecraft:modifier_1"}' in latest
        assert 'type:"minecraft:movement_speed"' in latest
        assert 'id:"minecraft:modifier_2"' in latest

        component = builder.build_command('give', params, '1.20.5')
        assert 'type:"minecraft:generic.attack_damage"' in component
        assert 'type:"minecraft:generic.movement_speed"' in component

    def test_modifier_ids_restart_per_command(self, builder):
        params = {'item': 'stick', 'attribute_modifiers': [('attack_damage', 1)]}
        first = builder.build_command('give', params, '1.21')
        assert builder.build_command('give', params, '1.21') == first
        assert 'modifier_2' not in first

    def test_attribute_modifiers_nbt(self, builder):
        params = {'item': 'diamond_sword', 'attribute_modifiers': [
            {'id': 'attack_damage', 'amount': 5, 'operation': 'add_multiplied_total', 'slot': 'mainhand'},
        ]}
        modern = builder.build_command('give', params, '1.20')
        assert 'AttributeName:"generic.attack_damage"' in modern
        assert 'Operation:2' in modern
        assert 'UUID:[I;0,0,0,0]' in modern
        tag = nbt_part(modern)
        assert tag['AttributeModifiers'][0]['Amount'] == 5.0

        older = builder.build_command('give', params, '1.14')
        assert 'UUIDMost:0L,UUIDLeast:0L' in older
        assert 'UUID:' not in older

        legacy = builder.build_command('give', params, '1.12')
        assert 'AttributeName:"generic.attackDamage"' in legacy


class TestSummon:
    def test_component_group(self, builder):
        params = {'entity': 'zombie', 'name': 'Boss', 'attributes': {'generic.max_health': 100}}
        assert builder.build_command('summon', params, '1.20.6') == (
            '/summon minecraft:zombie ~ ~ ~ {CustomName:\'{"text":"Boss"}\',CustomNameVisible:1b,'
            'Attributes:[{id:"minecraft:generic.max_health",base:100.0d}]}'
        )

    def test_latest(self, builder):
        params = {'entity': 'zombie', 'name': 'Boss', 'attributes': [{'id': 'max_health', 'base': 20}]}
        assert builder.build_command('summon', params, '1.21') == (
            '/summon minecraft:zombie ~ ~ ~ {CustomName:{text:"Boss"},CustomNameVisible:1b,'
            'attributes:[{id:"minecraft:max_health",base:20.0d}]}'
        )

    def test_nbt_and_legacy(self, builder):
        params = {'entity': 'zombified_piglin', 'name': 'Boss', 'attributes': {'max_health': 20},
                  'position': '0 64 0'}
        nbt = builder.build_command('summon', params, '1.18')
        assert nbt.startswith('/summon minecraft:zombified_piglin 0 64 0 {')
        assert 'Attributes:[{Name:"generic.max_health",Base:20.0d}]' in nbt
        assert nbt_part(nbt)['CustomName'] == '{"text":"Boss"}'

        assert builder.build_command('summon', params, '1.12') == (
            '/summon zombie_pigman 0 64 0 {CustomName:"Boss",CustomNameVisible:1b,'
            'Attributes:[{Name:"generic.maxHealth",Base:20.0d}]}'
        )

    def test_styled_name_gets_placeholder(self, builder):
        params = {'name': [{'text': 'Big', 'color': 'red'}, {'text': 'Boss'}]}
        command = builder.build_command('summon', params, '1.20')
        assert nbt_part(command)['CustomName'] == \
            '[{"text":"","italic":false},{"text":"Big","color":"red"},{"text":"Boss"}]'

    def test_flags(self, builder):
        command = builder.build_command('summon', {'entity': 'zombie', 'flags': ['Silent', 'NoAI']}, '1.21')
        assert command == '/summon minecraft:zombie ~ ~ ~ {NoAI:1b,Silent:1b}'
        command = builder.build_command('summon', {'flags': {'Glowing': True, 'IsBaby': False}}, '1.16')
        assert command == '/summon minecraft:zombie ~ ~ ~ {Glowing:1b}'

    def test_no_data(self, builder):
        assert builder.build_command('summon', {'entity': 'creeper'}, '1.21') == '/summon minecraft:creeper ~ ~ ~'

    def test_effects(self, builder):
        params = {'effects': [{'id': 'speed', 'duration': 30, 'level': 2}]}
        assert 'active_effects:[{id:"minecraft:speed",amplifier:1b,duration:600}]' in \
            builder.build_command('summon', params, '1.21')
        assert 'ActiveEffects:[{Id:1b,Amplifier:1b,Duration:600}]' in builder.build_command('summon', params, '1.19')

    @pytest.mark.parametrize('version, effects', [
        ('1.21', 'active_effects:[{id:"minecraft:speed",amplifier:-2b,duration:600}]'),
        ('1.20.5', 'active_effects:[{id:"minecraft:speed",amplifier:-2b,duration:600}]'),
        ('1.20', 'ActiveEffects:[{Id:1b,Amplifier:-2b,Duration:600}]'),
        ('1.12', 'ActiveEffects:[{Id:1b,Amplifier:-2b,Duration:600}]'),
    ])
    def test_effects_highest_level(self, builder, version, effects):
        params = {'effects': [{'id': 'speed', 'level': 255}]}
        assert effects in builder.build_command('summon', params, version)

    def test_equipment_latest(self, builder):
        params = {'equipment': {'head': {'item': 'diamond_helmet'}}}
        assert builder.build_command('summon', params, '1.21') == (
            '/summon minecraft:zombie ~ ~ ~ {equipment:{head:{id:"minecraft:diamond_helmet",count:1}},'
            'drop_chances:{head:0.085f},CanPickUpLoot:0b}'
        )

    def test_equipment_lists(self, builder):
        params = {'equipment': {
            'head': EquipmentItem('diamond_helmet', drop_chance=1.0),
            'mainhand': {'item': 'iron_sword', 'enchantments': [{'id': 'sharpness', 'level': 2}]},
        }}
        command = builder.build_command('summon', params, '1.20')
        assert 'ArmorItems:[{},{},{},{id:"minecraft:diamond_helmet",count:1}]' in command
        assert 'HandItems:[{id:"minecraft:iron_sword",count:1,' \
               'components:{"minecraft:enchantments":{levels:{"minecraft:sharpness":2}}}},{}]' in command
        assert 'ArmorDropChances:[0.085f,0.085f,0.085f,1.0f]' in command
        assert 'HandDropChances:[0.085f,0.085f]' in command
        assert command.endswith(',CanPickUpLoot:0b}')
        nbt_part(command)


class TestEnchant:
    def test_enchant(self, builder):
        params = {'id': 'sharpness', 'level': 5}
        assert builder.build_command('enchant', params, '1.20') == '/enchant @p minecraft:sharpness 5'
        assert builder.build_command('enchant', params, '1.12') == '/enchant @p 16 5'

    def test_unmapped_legacy_enchantment(self, builder):
        assert builder.build_command('enchant', {'id': 'swift_sneak', 'level': 3}, '1.12') == '/enchant @p 0 3'

    def test_level_passed_through(self, builder):
        assert builder.build_command('enchant', {'id': 'sharpness', 'level': 1000}, '1.21') == \
            '/enchant @p minecraft:sharpness 1000'

    def test_enchanted_item(self, builder):
        assert builder.build_command('enchant', SHARPNESS, '1.21') == \
            '/give @p minecraft:diamond_sword[enchantments={"sharpness":5}] 1'


class TestEffect:
    def test_give(self, builder):
        params = {'id': 'speed', 'duration': 30, 'level': 2}
        assert builder.build_command('effect', params, '1.20') == '/effect give @p minecraft:speed 30 1'
        assert builder.build_command('effect', params, '1.12') == '/effect @p 1 30 1'

    def test_hide_particles(self, builder):
        params = {'id': 'speed', 'duration': 30, 'level': 1, 'hide_particles': True, 'target': '@s'}
        assert builder.build_command('effect', params, '1.21') == '/effect give @s minecraft:speed 30 0 true'

    def test_infinite(self, builder):
        params = {'id': 'night_vision', 'duration': 'infinite'}
        assert builder.build_command('effect', params, '1.19.4') == '/effect give @p minecraft:night_vision infinite 0'
        assert builder.build_command('effect', params, '1.18') == '/effect give @p minecraft:night_vision 1000000 0'

    def test_clear(self, builder):
        assert builder.build_command('effect', {'clear': True, 'id': 'speed'}, '1.21') == \
            '/effect clear @p minecraft:speed'
        assert builder.build_command('effect', {'clear': True}, '1.21') == '/effect clear @p'
        assert builder.build_command('effect', {'clear': True}, '1.12') == '/effect @p clear'


class TestPotion:
    PARAMS = {'effects': [{'id': 'speed', 'duration': 60}], 'color': '#FF0000'}

    def test_components(self, builder):
        assert builder.build_command('potion', self.PARAMS, '1.21') == (
            '/give @p minecraft:potion[potion_contents={custom_effects:[{id:"minecraft:speed",amplifier:0b,'
            'duration:1200}],custom_color:16711680}] 1'
        )

    def test_nbt(self, builder):
        assert builder.build_command('potion', self.PARAMS, '1.20') == \
            '/give @p minecraft:potion{CustomPotionEffects:[{Id:1b,Amplifier:0b,Duration:1200}],' \
            'CustomPotionColor:16711680} 1'

    def test_legacy(self, builder):
        params = dict(self.PARAMS, item='splash_potion')
        assert builder.build_command('potion', params, '1.12') == \
            '/give @p splash_potion 1 0 {CustomPotionEffects:[{Id:1b,Amplifier:0b,Duration:1200}],' \
            'CustomPotionColor:16711680}'

    @pytest.mark.parametrize('version, effect', [
        ('1.21', '{id:"minecraft:strength",amplifier:-2b,duration:1200}'),
        ('1.20.5', '{id:"minecraft:strength",amplifier:-2b,duration:1200}'),
        ('1.20', '{Id:5b,Amplifier:-2b,Duration:1200}'),
        ('1.12', '{Id:5b,Amplifier:-2b,Duration:1200}'),
    ])
    def test_highest_level(self, builder, version, effect):
        params = {'effects': [{'id': 'strength', 'duration': 60, 'level': 255}]}
        assert effect in builder.build_command('potion', params, version)

    def test_amplifier_wraps_into_signed_byte(self, builder):
        for level, amplifier in ((128, '127b'), (129, '-128b'), (200, '-57b')):
            params = {'effects': [{'id': 'strength', 'duration': 1, 'level': level}]}
            assert f'amplifier:{amplifier}' in builder.build_command('potion', params, '1.21')

    def test_base_potion(self, builder):
        assert builder.build_command('potion', {'potion': 'swiftness'}, '1.21') == \
            '/give @p minecraft:potion[potion_contents={potion:"minecraft:swiftness"}] 1'


class TestText:
    def test_tellraw(self, builder):
        params = {'text': 'Hi', 'format': {'color': 'gold'}}
        assert builder.build_command('tellraw', params, '1.21') == '/tellraw @a {text:"Hi",color:"gold"}'
        assert builder.build_command('tellraw', params, '1.20') == '/tellraw @a {"text":"Hi","color":"gold"}'

    def test_tellraw_legacy_keeps_json(self, builder):
        params = {'text': 'Hi', 'click': {'action': 'run_command', 'value': '/spawn'}}
        assert builder.build_command('tellraw', params, '1.12') == \
            '/tellraw @a {"text":"Hi","clickEvent":{"action":"run_command","value":"/spawn"}}'

    def test_tellraw_hover(self, builder):
        params = {'runs': [['A', {'bold': True}], ['B']], 'hover': {'action': 'show_text', 'contents': 'Tip'}}
        assert builder.build_command('tellraw', params, '1.21') == \
            '/tellraw @a [{text:"A",bold:true,hover_event:{action:"show_text",value:"Tip"}},{text:"B"}]'

    def test_title(self, builder):
        params = {'text': 'Welcome', 'target': '@p'}
        assert builder.build_command('title', params, '1.20') == '/title @p title {"text":"Welcome"}'

    def test_title_times_and_mode(self, builder):
        params = {'text': 'Hi', 'mode': 'actionbar', 'times': [10, 70, 20]}
        assert builder.build_command('title', params, '1.21') == \
            '/title @a times 10 70 20\n/title @a actionbar {text:"Hi"}'

    def test_title_times_from_text(self, builder):
        for times in ('10 70 20', '10,70,20'):
            params = {'text': 'Hi', 'times': times}
            assert builder.build_command('title', params, '1.20').split('\n')[0] == '/title @a times 10 70 20'
        with pytest.raises(ValueError):
            builder.build_command('title', {'text': 'Hi', 'times': '10 70'}, '1.20')

    def test_title_bad_mode(self, builder):
        with pytest.raises(ValueError):
            builder.build_command('title', {'text': 'Hi', 'mode': 'popup'}, '1.21')


class TestBook:
    PARAMS = {'title': 'Tale', 'author': 'Steve', 'pages': ['Hello', '']}

    def test_latest(self, builder):
        assert builder.build_command('book', self.PARAMS, '1.21') == \
            '/give @p minecraft:written_book[written_book_content={pages:[{text:"Hello"},""],' \
            'title:"Tale",author:"Steve"}] 1'

    def test_component(self, builder):
        assert builder.build_command('book', self.PARAMS, '1.20.5') == \
            '/give @p minecraft:written_book[written_book_content={pages:[\'{"text":"Hello"}\',\'""\'],' \
            'title:"Tale",author:"Steve"}] 1'

    def test_nbt(self, builder):
        command = builder.build_command('book', self.PARAMS, '1.20')
        assert command == '/give @p minecraft:written_book{pages:[\'{"text":"Hello"}\',\'""\'],' \
                          'title:"Tale",author:"Steve"} 1'
        assert nbt_part(command)['title'] == 'Tale'

    def test_legacy(self, builder):
        assert builder.build_command('book', self.PARAMS, '1.12') == \
            '/give @p written_book 1 0 {pages:[\'{"text":"Hello"}\',\'""\'],title:"Tale",author:"Steve"}'
