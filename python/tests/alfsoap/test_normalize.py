import unittest as test

from alfsoap import normalize as nz
from alfsoap.noderef import NodeReference
from alfsoap.exceptions import UnconstructibleRecord

CM = "{http://www.alfresco.org/model/content/1.0}"
SYS = "{http://www.alfresco.org/model/system/1.0}"

def bag_row(uuid, name=None, type=CM+"folder"):
    cols = [
        { "name": SYS+"store-protocol", "value": "workspace" },
        { "name": SYS+"store-identifier", "value": "SpacesStore" },
    ]
    if uuid:
        cols.append({ "name": SYS+"node-uuid", "value": uuid })
    if name:
        cols.append({ "name": CM+"name", "value": name })
    return { "columns": cols, "node": { "id": uuid, "type": type } }

class TestExtractRows(test.TestCase):

    def test_bare_list(self):
        rows = [{ "nodeRef": "workspace://SpacesStore/a" }]
        self.assertEqual(nz.extract_rows(rows), rows)

    def test_result_set(self):
        rows = [bag_row("a"), bag_row("b")]
        self.assertEqual(nz.extract_rows({ "resultSet": { "rows": rows } }), rows)
        self.assertEqual(nz.extract_rows({ "queryReturn": { "resultSet": { "rows": rows } } }),
                         rows)
        self.assertEqual(nz.extract_rows({ "queryChildrenReturn":
                                           { "resultSet": { "rows": rows[0] } } }),
                         [rows[0]])
        self.assertEqual(nz.extract_rows({ "resultSet": { "totalRowCount": "0" } }), [])

    def test_return_element(self):
        entry = { "nodeRef": "workspace://SpacesStore/a" }
        self.assertEqual(nz.extract_rows({ "getReturn": entry }), [entry])
        self.assertEqual(nz.extract_rows({ "queryReturn": [entry, entry] }), [entry, entry])
        self.assertEqual(nz.extract_rows({ "result": entry }), [entry])

    def test_generic_list(self):
        entry = { "nodeRef": "workspace://SpacesStore/a" }
        self.assertEqual(nz.extract_rows({ "nodes": [entry] }), [entry])
        self.assertEqual(nz.extract_rows({ "items": entry }), [entry])
        self.assertEqual(nz.extract_rows({ "children": [] }), [])

    def test_unrecognized(self):
        self.assertEqual(nz.extract_rows(None), [])
        self.assertEqual(nz.extract_rows("goober"), [])
        self.assertEqual(nz.extract_rows({ "status": "ok" }), [])
        self.assertEqual(nz.extract_rows({}), [])

class TestHelpers(test.TestCase):

    def test_short_qname(self):
        self.assertEqual(nz.short_qname(CM+"folder"), "cm:folder")
        self.assertEqual(nz.short_qname(SYS+"store-root"), "sys:store-root")
        self.assertEqual(nz.short_qname("{http://www.alfresco.org/model/site/1.0}site"),
                         "st:site")
        self.assertEqual(nz.short_qname("{urn:other}thing"), "{urn:other}thing")
        self.assertEqual(nz.short_qname("cm:folder"), "cm:folder")

    def test_find_property(self):
        props = { CM+"title": "", CM+"name": "Sites", "other": None }
        self.assertEqual(nz.find_property(props, "}name"), "Sites")
        self.assertIsNone(nz.find_property(props, "title"))
        self.assertIsNone(nz.find_property(props, "other"))
        self.assertIsNone(nz.find_property(props, "missing"))
        self.assertIsNone(nz.find_property({ CM+"name": " \n " }, "}name"))

        nvs = [{ "name": CM+"name", "value": "x" }, { "name": CM+"name", "value": "y" }]
        self.assertEqual(nz.find_property(nvs, "}name"), "x")

    def test_named_values(self):
        raw = { "columns": { "name": "a", "value": 1 } }
        self.assertEqual(nz.named_values(raw), [{ "name": "a", "value": 1 }])
        raw = { "properties": [{ "name": "a", "value": 1 }, { "value": 2 }] }
        self.assertEqual(nz.named_values(raw), [{ "name": "a", "value": 1 }])
        self.assertEqual(nz.named_values({ "properties": { "a": 1 } }), [])

class TestBuildNodeRecord(test.TestCase):

    def test_direct_reference(self):
        rec = nz.build_node_record({ "nodeRef": "workspace://SpacesStore/abc", "name": "Docs",
                                     "type": CM+"folder", "properties": { "x": 1 } })
        self.assertEqual(rec.reference, NodeReference("workspace", "SpacesStore", "abc"))
        self.assertEqual(rec.nodeRef, "workspace://SpacesStore/abc")
        self.assertEqual(rec.name, "Docs")
        self.assertEqual(rec.type, "cm:folder")
        self.assertEqual(rec.properties, { "x": 1 })

    def test_reference_structure(self):
        rec = nz.build_node_record({ "reference": { "store": { "scheme": "workspace",
                                                               "address": "SpacesStore" },
                                                    "uuid": "abc" },
                                     "type": CM+"content",
                                     "properties": [{ "name": CM+"name", "value": "a.txt" }] })
        self.assertEqual(rec.nodeRef, "workspace://SpacesStore/abc")
        self.assertEqual(rec.name, "a.txt")
        self.assertEqual(rec.type, "cm:content")
        self.assertEqual(rec.properties, { CM+"name": "a.txt" })

    def test_reconstruct_from_bag(self):
        rec = nz.build_node_record(bag_row("abc", "Sites"))
        self.assertEqual(rec.nodeRef, "workspace://SpacesStore/abc")
        self.assertEqual(rec.name, "Sites")
        self.assertEqual(rec.type, "cm:folder")
        self.assertEqual(rec.properties[SYS+"node-uuid"], "abc")

    def test_reconstruct_from_property_map(self):
        rec = nz.build_node_record({ "properties": { SYS+"store-protocol": "workspace",
                                                     SYS+"store-identifier": "SpacesStore",
                                                     SYS+"node-uuid": "abc",
                                                     CM+"name": "Docs" } })
        self.assertEqual(rec.nodeRef, "workspace://SpacesStore/abc")
        self.assertEqual(rec.name, "Docs")
        self.assertEqual(rec.properties[CM+"name"], "Docs")

    def test_bag_with_unusable_reference_parts(self):
        for uuid in ("x://y", "   "):
            with self.assertRaises(UnconstructibleRecord):
                nz.build_node_record(bag_row(uuid, "bad"))

        raw = bag_row("abc", "bad")
        raw['columns'][1]['value'] = "Spaces/Store"
        with self.assertRaises(UnconstructibleRecord):
            nz.build_node_record(raw)

        raw = bag_row("abc", "ok")
        raw['columns'][0]['value'] = " workspace "
        self.assertEqual(nz.build_node_record(raw).nodeRef, "workspace://SpacesStore/abc")

    def test_bad_direct_reference_falls_back_to_bag(self):
        raw = bag_row("abc", "Sites")
        raw['nodeRef'] = "not-a-ref"
        self.assertEqual(nz.build_node_record(raw).nodeRef, "workspace://SpacesStore/abc")

    def test_name_fallback(self):
        # name from the last segment of the reference
        rec = nz.build_node_record({ "nodeRef": "workspace://SpacesStore/abc" })
        self.assertEqual(rec.name, "abc")
        self.assertEqual(rec.type, "unknown")

        rec = nz.build_node_record({ "nodeRef": "workspace://SpacesStore/abc", "name": "  ",
                                     "properties": { "name": "plain" } })
        self.assertEqual(rec.name, "plain")

        rec = nz.build_node_record({ "nodeRef": "workspace://SpacesStore/abc",
                                     "properties": { "cm:name": "prefixed" } })
        self.assertEqual(rec.name, "prefixed")

        # whitespace-only names are skipped
        rec = nz.build_node_record({ "nodeRef": "workspace://SpacesStore/abc",
                                     "properties": { CM+"name": "   " } })
        self.assertEqual(rec.name, "abc")

        rec = nz.build_node_record({ "nodeRef": "workspace://SpacesStore/abc",
                                     "properties": { "name": " \t" } })
        self.assertEqual(rec.name, "abc")

    def test_resolve_name_unknown(self):
        self.assertEqual(nz.resolve_name({}), "Unknown")
        self.assertEqual(nz.resolve_name({ "name": "x" }), "x")

    def test_unconstructible(self):
        with self.assertRaises(UnconstructibleRecord):
            nz.build_node_record(bag_row(None, "orphan"))
        with self.assertRaises(UnconstructibleRecord):
            nz.build_node_record({ "name": "nothing" })
        with self.assertRaises(UnconstructibleRecord):
            nz.build_node_record("goober")

    def test_to_dict(self):
        rec = nz.build_node_record({ "nodeRef": "workspace://SpacesStore/abc", "name": "Docs",
                                     "type": "cm:folder" })
        self.assertEqual(rec.to_dict(), { "nodeRef": "workspace://SpacesStore/abc",
                                          "name": "Docs", "type": "cm:folder",
                                          "properties": {} })

class TestNormalizeNodes(test.TestCase):

    def test_same_records_from_each_shape(self):
        rows = [bag_row("a", "A"), bag_row("b", "B")]
        shapes = [
            rows,
            { "resultSet": { "rows": rows } },
            { "queryReturn": { "resultSet": { "rows": rows } } },
            { "queryReturn": rows },
            { "nodes": rows }
        ]
        for shape in shapes:
            nodes = nz.normalize_nodes(shape)
            self.assertEqual([n.nodeRef for n in nodes],
                             ["workspace://SpacesStore/a", "workspace://SpacesStore/b"])
            self.assertEqual([n.name for n in nodes], ["A", "B"])

    def test_drops_unresolvable(self):
        rows = [bag_row("a", "A"), bag_row(None, "orphan"), bag_row("c", "C")]
        nodes = nz.normalize_nodes({ "resultSet": { "rows": rows } })
        self.assertIsInstance(nodes, nz.NodeList)
        self.assertEqual(len(nodes), 2)
        self.assertEqual([n.name for n in nodes], ["A", "C"])
        self.assertEqual(len(nodes.dropped), 1)
        self.assertIs(nodes.dropped[0], rows[1])

    def test_drops_entries_without_reference_or_bag(self):
        nodes = nz.normalize_nodes([{ "name": "x" }, "junk", None,
                                    { "nodeRef": "workspace://SpacesStore/a" }])
        self.assertEqual(len(nodes), 1)
        self.assertEqual(len(nodes.dropped), 3)

    def test_property_map_rows(self):
        rows = [{ "properties": { SYS+"store-protocol": "workspace",
                                  SYS+"store-identifier": "SpacesStore",
                                  SYS+"node-uuid": "abc", CM+"name": "Docs" } }]
        nodes = nz.normalize_nodes({ "resultSet": { "rows": rows } })
        self.assertEqual([n.name for n in nodes], ["Docs"])
        self.assertEqual(nodes.dropped, [])

    def test_empty(self):
        nodes = nz.normalize_nodes({ "weird": True })
        self.assertEqual(nodes, [])
        self.assertEqual(nodes.dropped, [])


if __name__ == '__main__':
    test.main()
