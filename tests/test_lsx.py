from __future__ import annotations

import pytest

from baldursmm.errors import TemplateUnreadable
from baldursmm.lsx import (
    VANILLA_MODSETTINGS,
    build_modsettings_xml,
    parse_template,
    parse_template_text,
    write_modsettings,
)

from conftest import make_record

# Pre-Patch 7 layout: ModOrder + Mods, FixedString UUIDs
_OLD_TEMPLATE = """\
<?xml version="1.0" encoding="UTF-8"?>
<save>
    <version major="4" minor="0" revision="10" build="100" />
    <region id="ModuleSettings">
        <node id="root">
            <children>
                <node id="ModOrder">
                    <children>
                        <node id="Module">
                            <attribute id="UUID" value="28ac9ce2-2aba-8cda-b3b5-6e922f71b6b8" type="FixedString" />
                        </node>
                    </children>
                </node>
                <node id="Mods">
                    <children>
                        <node id="ModuleShortDesc">
                            <attribute id="Folder" value="GustavDev" type="LSWString" />
                            <attribute id="MD5" value="" type="LSString" />
                            <attribute id="Name" value="GustavDev" type="FixedString" />
                            <attribute id="UUID" value="28ac9ce2-2aba-8cda-b3b5-6e922f71b6b8" type="FixedString" />
                            <attribute id="Version64" value="36028797018963968" type="int64" />
                        </node>
                    </children>
                </node>
            </children>
        </node>
    </region>
</save>
"""


def test_empty_synthesis_reproduces_vanilla_template_exactly():
    tree = parse_template_text(VANILLA_MODSETTINGS)
    assert build_modsettings_xml(tree, []) == VANILLA_MODSETTINGS


def test_empty_synthesis_keeps_default_entries():
    tree = parse_template_text(_OLD_TEMPLATE)
    xml = build_modsettings_xml(tree, [])
    assert xml.count('<node id="ModuleShortDesc">') == 1
    assert xml.count('<node id="Module">') == 1
    assert 'value="GustavDev"' in xml
    # Same tree parsed again gives the same defaults document
    assert build_modsettings_xml(parse_template_text(xml), []) == xml


def test_synthesis_is_deterministic():
    records = [make_record("a", 0, True), make_record("b", 1, True)]
    first = build_modsettings_xml(parse_template_text(VANILLA_MODSETTINGS), records)
    second = build_modsettings_xml(parse_template_text(VANILLA_MODSETTINGS), list(records))
    assert first == second


def test_enabled_records_appear_in_order_after_defaults():
    a = make_record("uuid-a", 0, True, name="Alpha", folder="AlphaF")
    b = make_record("uuid-b", 1, True, name="Beta", folder="BetaF")
    tree = parse_template_text(VANILLA_MODSETTINGS)

    xml = build_modsettings_xml(tree, [a, b])

    gustav = xml.index('value="GustavDev"')
    alpha = xml.index('value="uuid-a"')
    beta = xml.index('value="uuid-b"')
    assert gustav < alpha < beta
    assert '<attribute id="Folder" type="LSString" value="AlphaF"/>' in xml
    assert '<attribute id="MD5" type="LSString" value="md5-uuid-a"/>' in xml
    assert '<attribute id="UUID" type="guid" value="uuid-b"/>' in xml
    assert xml.count('<node id="ModuleShortDesc">') == 3
    # Still a valid document with the entries in place
    reparsed = parse_template_text(xml)
    mods = reparsed.find_node("Mods")
    assert [n.attribute("Name").value for n in mods.children] == ["GustavDev", "Alpha", "Beta"]


def _template_listing(*uuids: str) -> str:
    """Vanilla document that already lists the given mods after GustavDev."""
    entries = "".join(
        '            <node id="ModuleShortDesc">\n'
        f'              <attribute id="Folder" type="LSString" value="Old{u}"/>\n'
        f'              <attribute id="UUID" type="guid" value="{u}"/>\n'
        '            </node>\n'
        for u in uuids
    )
    marker = "          </children>\n        </node>\n      </children>"
    return VANILLA_MODSETTINGS.replace(marker, entries + marker, 1)


def test_template_entry_for_written_mod_is_replaced():
    tree = parse_template_text(_template_listing("X", "Y"))
    xml = build_modsettings_xml(tree, [make_record("X", 0, True, folder="NewX")])

    assert xml.count('value="X"') == 1
    mods = parse_template_text(xml).find_node("Mods")
    assert [n.attribute("UUID").value for n in mods.children] == [
        "28ac9ce2-2aba-8cda-b3b5-6e922f71b6b8", "Y", "X",
    ]
    assert mods.children[-1].attribute("Folder").value == "NewX"
    assert 'value="OldX"' not in xml


def test_template_entry_replaced_in_mod_order_too():
    template = _OLD_TEMPLATE.replace(
        '                    </children>\n                </node>\n                <node id="Mods">',
        '                        <node id="Module">\n'
        '                            <attribute id="UUID" value="X" type="FixedString" />\n'
        '                        </node>\n'
        '                    </children>\n                </node>\n                <node id="Mods">',
    )
    tree = parse_template_text(template)
    xml = build_modsettings_xml(tree, [make_record("X", 0, True)])
    order = parse_template_text(xml).find_node("ModOrder")
    assert [n.attribute("UUID").value for n in order.children] == [
        "28ac9ce2-2aba-8cda-b3b5-6e922f71b6b8", "X",
    ]


def test_template_is_not_modified():
    tree = parse_template_text(VANILLA_MODSETTINGS)
    build_modsettings_xml(tree, [make_record("x", 0, True)])
    assert len(tree.find_node("Mods").children) == 1


def test_old_template_gets_mod_order_and_keeps_its_types():
    tree = parse_template_text(_OLD_TEMPLATE)
    xml = build_modsettings_xml(tree, [make_record("uuid-z", 0, True, folder="Zed")])

    reparsed = parse_template_text(xml)
    order = reparsed.find_node("ModOrder")
    assert [n.attribute("UUID").value for n in order.children] == [
        "28ac9ce2-2aba-8cda-b3b5-6e922f71b6b8", "uuid-z",
    ]
    assert order.children[1].attribute("UUID").type == "FixedString"
    entry = reparsed.find_node("Mods").children[1]
    assert entry.attribute("UUID").type == "FixedString"
    assert entry.attribute("Folder").type == "LSWString"
    # Not declared by the template: built-in default
    assert entry.attribute("PublishHandle").type == "uint64"


def test_version64_uses_numeric_version_only():
    tree = parse_template_text(VANILLA_MODSETTINGS)
    numeric = make_record("n", 0, True, version="36028797018963970")
    text = make_record("t", 1, True, version="1.2.0")
    mods = parse_template_text(build_modsettings_xml(tree, [numeric, text])).find_node("Mods")
    assert mods.children[1].attribute("Version64").value == "36028797018963970"
    assert mods.children[2].attribute("Version64").value == "36028797018963968"


def test_values_are_escaped():
    tree = parse_template_text(VANILLA_MODSETTINGS)
    record = make_record("e", 0, True, name='Fish & "Chips" <deluxe>')
    xml = build_modsettings_xml(tree, [record])
    assert 'value="Fish &amp; &quot;Chips&quot; &lt;deluxe&gt;"' in xml
    mods = parse_template_text(xml).find_node("Mods")
    assert mods.children[1].attribute("Name").value == 'Fish & "Chips" <deluxe>'


@pytest.mark.parametrize("text", [
    "<save><region id='x'>",
    "<other/>",
    "<save><region id='ModuleSettings'><node id='root'/></region></save>",
])
def test_unusable_templates(text):
    with pytest.raises(TemplateUnreadable):
        parse_template_text(text)


def test_missing_template_file(tmp_path):
    with pytest.raises(TemplateUnreadable):
        parse_template(tmp_path / "missing.lsx")


def test_write_modsettings_replaces_file(tmp_path):
    target = tmp_path / "PlayerProfiles" / "Public" / "modsettings.lsx"
    write_modsettings(target, "first")
    write_modsettings(target, VANILLA_MODSETTINGS)
    assert target.read_text(encoding="utf-8") == VANILLA_MODSETTINGS
    assert [p.name for p in target.parent.iterdir()] == ["modsettings.lsx"]
