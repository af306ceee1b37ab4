"""
lsx.py
Parse the base modsettings.lsx and synthesize a new one from the enabled mods.

Workflow:
  1. parse_template() reads the default modsettings.lsx (backed up on first
     start) into a SettingsTree.
  2. build_modsettings_xml() renders the tree back to LSX text, appending one
     ModuleShortDesc entry per enabled mod to the "Mods" node (and one Module
     entry to "ModOrder" when the template still has that pre-Patch 7 node).
  3. The caller writes the result with write_modsettings().

The template's own entries (GustavDev on a vanilla install) are always kept
first, so building with no mods reproduces the template defaults exactly.
Rendering uses a fixed two-space layout and never depends on dict ordering
or the clock: the same tree and the same records give byte-identical output.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence
from xml.sax.saxutils import escape

from baldursmm.errors import TemplateUnreadable
from baldursmm.fsutil import write_text_atomic
from baldursmm.models import ModRecord

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

MODS_NODE_ID = "Mods"
MOD_ORDER_NODE_ID = "ModOrder"
MODULE_DESC_ID = "ModuleShortDesc"
MODULE_ORDER_ID = "Module"

DEFAULT_VERSION64 = "36028797018963968"

# Patch 7+ attribute types, used when the template does not declare one
_DEFAULT_ATTRIBUTE_TYPES = {
    "Folder":        "LSString",
    "MD5":           "LSString",
    "Name":          "LSString",
    "PublishHandle": "uint64",
    "UUID":          "guid",
    "Version64":     "int64",
}

_MOD_ORDER_UUID_TYPE = "FixedString"

_XML_HEADER = '<?xml version="1.0" encoding="UTF-8"?>'
_INDENT = "  "
_ATTR_ENTITIES = {'"': "&quot;"}

# Vanilla Patch 7+ modsettings.lsx, used when no template has been backed up yet
VANILLA_MODSETTINGS = """\
<?xml version="1.0" encoding="UTF-8"?>
<save>
  <version major="4" minor="7" revision="1" build="3"/>
  <region id="ModuleSettings">
    <node id="root">
      <children>
        <node id="Mods">
          <children>
            <node id="ModuleShortDesc">
              <attribute id="Folder" type="LSString" value="GustavDev"/>
              <attribute id="MD5" type="LSString" value=""/>
              <attribute id="Name" type="LSString" value="GustavDev"/>
              <attribute id="PublishHandle" type="uint64" value="0"/>
              <attribute id="UUID" type="guid" value="28ac9ce2-2aba-8cda-b3b5-6e922f71b6b8"/>
              <attribute id="Version64" type="int64" value="36028797018963968"/>
            </node>
          </children>
        </node>
      </children>
    </node>
  </region>
</save>
"""


# ---------------------------------------------------------------------------
# Data
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class LsxAttribute:
    id: str
    type: str
    value: str
    # Any further XML attributes (e.g. "handle" on TranslatedString), in order
    extra: tuple[tuple[str, str], ...] = ()


@dataclass
class LsxNode:
    id: str
    attributes: list[LsxAttribute] = field(default_factory=list)
    children: list["LsxNode"] = field(default_factory=list)
    extra: tuple[tuple[str, str], ...] = ()

    def attribute(self, attr_id: str) -> LsxAttribute | None:
        for attr in self.attributes:
            if attr.id == attr_id:
                return attr
        return None


@dataclass
class LsxRegion:
    id: str
    nodes: list[LsxNode] = field(default_factory=list)


@dataclass
class SettingsTree:
    """Order-preserving view of an LSX document."""
    version: tuple[tuple[str, str], ...] = ()
    regions: list[LsxRegion] = field(default_factory=list)

    def iter_nodes(self):
        stack: list[LsxNode] = []
        for region in reversed(self.regions):
            stack.extend(reversed(region.nodes))
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def find_node(self, node_id: str) -> LsxNode | None:
        for node in self.iter_nodes():
            if node.id == node_id:
                return node
        return None


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def _extra_items(element: ET.Element, skip: tuple[str, ...]) -> tuple[tuple[str, str], ...]:
    return tuple((k, v) for k, v in element.attrib.items() if k not in skip)


def _parse_node(element: ET.Element) -> LsxNode:
    node = LsxNode(id=element.get("id", ""), extra=_extra_items(element, ("id",)))
    for child in element:
        if child.tag == "attribute":
            node.attributes.append(LsxAttribute(
                id=child.get("id", ""),
                type=child.get("type", ""),
                value=child.get("value", ""),
                extra=_extra_items(child, ("id", "type", "value")),
            ))
        elif child.tag == "children":
            node.children.extend(
                _parse_node(sub) for sub in child if sub.tag == "node"
            )
    return node


def parse_template_text(text: str) -> SettingsTree:
    """Parse LSX text into a SettingsTree; raises TemplateUnreadable."""
    try:
        root = ET.fromstring(text)
    except ET.ParseError as exc:
        raise TemplateUnreadable(f"modsettings template is not well-formed XML: {exc}") from exc
    if root.tag != "save":
        raise TemplateUnreadable(f"Unexpected root element <{root.tag}> in modsettings template")

    tree = SettingsTree()
    version = root.find("version")
    if version is not None:
        tree.version = tuple(version.attrib.items())
    for region_el in root.iter("region"):
        region = LsxRegion(id=region_el.get("id", ""))
        region.nodes.extend(_parse_node(n) for n in region_el if n.tag == "node")
        tree.regions.append(region)

    if tree.find_node(MODS_NODE_ID) is None:
        raise TemplateUnreadable(f'modsettings template has no "{MODS_NODE_ID}" node')
    return tree


def parse_template(template_path: Path) -> SettingsTree:
    """Read and parse the base modsettings.lsx."""
    try:
        text = template_path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as exc:
        raise TemplateUnreadable(f"Unable to read modsettings template {template_path}: {exc}") from exc
    return parse_template_text(text)


# ---------------------------------------------------------------------------
# Synthesis
# ---------------------------------------------------------------------------

def _template_types(tree: SettingsTree, parent_id: str, entry_id: str) -> dict[str, str]:
    """Attribute id → type, as declared by the template's first default entry."""
    parent = tree.find_node(parent_id)
    if parent is None:
        return {}
    for child in parent.children:
        if child.id == entry_id:
            return {a.id: a.type for a in child.attributes if a.type}
    return {}


def _version64(record: ModRecord) -> str:
    version = (record.version or "").strip()
    return version if version.isdigit() else DEFAULT_VERSION64


def _mod_entry(record: ModRecord, types: dict[str, str]) -> LsxNode:
    values = {
        "Folder":        record.folder,
        "MD5":           record.md5,
        "Name":          record.name,
        "PublishHandle": "0",
        "UUID":          record.uuid,
        "Version64":     _version64(record),
    }
    return LsxNode(
        id=MODULE_DESC_ID,
        attributes=[
            LsxAttribute(id=key, type=types.get(key, default_type), value=values[key])
            for key, default_type in _DEFAULT_ATTRIBUTE_TYPES.items()
        ],
    )


def _order_entry(record: ModRecord, uuid_type: str) -> LsxNode:
    return LsxNode(
        id=MODULE_ORDER_ID,
        attributes=[LsxAttribute(id="UUID", type=uuid_type, value=record.uuid)],
    )


def _quote(value: str) -> str:
    return escape(value, _ATTR_ENTITIES)


def _format_items(items: Sequence[tuple[str, str]]) -> str:
    return "".join(f' {k}="{_quote(v)}"' for k, v in items)


def _entry_uuid(node: LsxNode) -> str | None:
    attr = node.attribute("UUID")
    return attr.value if attr is not None else None


def _render_node(node: LsxNode, depth: int, appended: dict[str, list[LsxNode]],
                 replaced: set[str], lines: list[str]) -> None:
    pad = _INDENT * depth
    head = f'{pad}<node id="{_quote(node.id)}"{_format_items(node.extra)}'
    children = node.children
    if node.id in appended:
        # A template entry for a mod that is being written is replaced by it
        children = [c for c in children if _entry_uuid(c) not in replaced]
        children = children + appended[node.id]
    if not node.attributes and not children:
        lines.append(head + "/>")
        return
    lines.append(head + ">")
    for attr in node.attributes:
        items = (("id", attr.id), ("type", attr.type), ("value", attr.value)) + attr.extra
        lines.append(f"{pad}{_INDENT}<attribute{_format_items(items)}/>")
    if children:
        lines.append(f"{pad}{_INDENT}<children>")
        for child in children:
            _render_node(child, depth + 2, appended, replaced, lines)
        lines.append(f"{pad}{_INDENT}</children>")
    lines.append(f"{pad}</node>")


def build_modsettings_xml(tree: SettingsTree, records: Sequence[ModRecord]) -> str:
    """Build the full modsettings.lsx text.

    records must already be the enabled mods sorted by order; document
    order of the generated entries equals their order in the sequence.
    Template entries whose UUID belongs to one of the records are dropped,
    so every mod appears once.  The tree is not modified.
    """
    desc_types = _template_types(tree, MODS_NODE_ID, MODULE_DESC_ID)
    order_types = _template_types(tree, MOD_ORDER_NODE_ID, MODULE_ORDER_ID)
    uuid_type = order_types.get("UUID", _MOD_ORDER_UUID_TYPE)

    appended: dict[str, list[LsxNode]] = {
        MODS_NODE_ID: [_mod_entry(r, desc_types) for r in records],
    }
    if tree.find_node(MOD_ORDER_NODE_ID) is not None:
        appended[MOD_ORDER_NODE_ID] = [_order_entry(r, uuid_type) for r in records]
    replaced = {r.uuid for r in records}

    lines = [_XML_HEADER, "<save>"]
    if tree.version:
        lines.append(f"{_INDENT}<version{_format_items(tree.version)}/>")
    for region in tree.regions:
        lines.append(f'{_INDENT}<region id="{_quote(region.id)}">')
        for node in region.nodes:
            _render_node(node, 2, appended, replaced, lines)
        lines.append(f"{_INDENT}</region>")
    lines.append("</save>")
    return "\n".join(lines) + "\n"


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------

def write_modsettings(modsettings_path: Path, xml: str) -> None:
    """Replace the live modsettings.lsx wholesale (temp file + rename)."""
    write_text_atomic(modsettings_path, xml)
