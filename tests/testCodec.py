import json
import os
import random
import sys
import unittest

pwd = os.path.dirname(os.path.realpath(__file__))
sys.path.append(os.path.join(pwd, "..", "src"))
from AhoCorasick import build_automaton  # noqa: E402
from ac_codec import (  # noqa: E402
    create_from_table,
    dumps,
    dumps_table,
    export_table,
    import_table,
    loads,
    loads_table,
)
from ac_errors import TableStructureError  # noqa: E402

HE_SHE = ["he", "she", "his", "hers"]


def closed_he_she_table():
    # Outputs already closed under fail links, as the original cache stored them
    return {
        0: {"children": {"h": 1, "s": 2}, "output": []},
        1: {"children": {"e": 3}, "output": []},
        2: {"children": {"h": 4}, "output": []},
        3: {"children": {}, "output": ["he"]},
        4: {"children": {"e": 5}, "output": []},
        5: {"children": {}, "output": ["she", "he"]},
    }


class testExport(unittest.TestCase):
    def test_layout(self):
        table = export_table(build_automaton(HE_SHE))
        self.assertEqual(sorted(table), list(range(len(table))))
        self.assertEqual(table[0]["output"], [])
        for entry in table.values():
            self.assertEqual(set(entry), {"children", "output"})
        # Breadth first numbering: root children come first
        self.assertEqual(sorted(table[0]["children"].values()), [1, 2])

    def test_local_outputs_only(self):
        table = export_table(build_automaton(["he", "she"]))
        outputs = sorted(pat for entry in table.values() for pat in entry["output"])
        self.assertEqual(outputs, ["he", "she"])

    def test_empty_automaton(self):
        table = export_table(build_automaton([]))
        self.assertEqual(table, {0: {"children": {}, "output": []}})
        self.assertEqual(import_table(table).search("abc"), [])


class testRoundTrip(unittest.TestCase):
    def assertSameSearch(self, a, b, texts):
        for text in texts:
            self.assertEqual(a.search(text), b.search(text))

    def test_random_round_trip(self):
        rng = random.Random(42)
        for _ in range(30):
            patterns = [
                "".join(rng.choice("abc") for _ in range(rng.randint(1, 5)))
                for _ in range(rng.randint(0, 12))
            ]
            original = build_automaton(patterns)
            restored = import_table(export_table(original))
            texts = [
                "".join(rng.choice("abcd") for _ in range(rng.randint(0, 30)))
                for _ in range(10)
            ]
            self.assertSameSearch(original, restored, texts)
            self.assertEqual(sorted(original.patterns), sorted(restored.patterns))

    def test_json_round_trip_multibyte(self):
        original = build_automaton(["色情", "赌博", "暴力", "😀"])
        blob = dumps(original, "json")
        self.assertIn("色情".encode("utf-8"), blob)
        restored = loads(blob, "json")
        self.assertSameSearch(original, restored, ["这里包含色情和赌博的内容😀", "安全"])

    def test_json_keys_become_strings(self):
        table = json.loads(dumps_table(export_table(build_automaton(HE_SHE))))
        self.assertIn("0", table)
        self.assertIsNotNone(create_from_table(table))

    def test_pickle_round_trip(self):
        original = build_automaton(HE_SHE)
        restored = loads(dumps(original, "pickle"), "pickle")
        self.assertSameSearch(original, restored, ["ahishers", "ushers"])

    def test_double_round_trip_is_stable(self):
        table = export_table(build_automaton(HE_SHE))
        self.assertEqual(export_table(import_table(table)), table)

    def test_closed_outputs_not_doubled(self):
        automaton = import_table(closed_he_she_table())
        self.assertEqual(
            [tuple(r) for r in automaton.search("she")],
            [("she", 0, 2), ("he", 1, 2)],
        )

    def test_unknown_format(self):
        with self.assertRaises(ValueError):
            dumps(build_automaton(["a"]), "yaml")
        with self.assertRaises(ValueError):
            loads_table(b"{}", "yaml")


class testMalformedTables(unittest.TestCase):
    def assertRejected(self, table):
        with self.assertRaises(TableStructureError):
            import_table(table)
        with self.assertLogs(level="WARNING"):
            self.assertIsNone(create_from_table(table))

    def test_empty_table(self):
        self.assertRejected({})

    def test_not_a_mapping(self):
        self.assertRejected([{"children": {}, "output": []}])

    def test_missing_root(self):
        table = closed_he_she_table()
        del table[0]
        self.assertRejected(table)

    def test_dangling_child(self):
        table = closed_he_she_table()
        table[3]["children"]["r"] = 99
        self.assertRejected(table)

    def test_cycle(self):
        table = closed_he_she_table()
        table[5]["children"]["x"] = 0
        self.assertRejected(table)

    def test_shared_child(self):
        table = closed_he_she_table()
        table[2]["children"]["e"] = 3
        self.assertRejected(table)

    def test_unreachable_node(self):
        table = closed_he_she_table()
        table[6] = {"children": {}, "output": []}
        self.assertRejected(table)

    def test_bad_symbol(self):
        table = closed_he_she_table()
        table[0]["children"] = {"hs": 1, "s": 2}
        self.assertRejected(table)

    def test_bad_id(self):
        table = closed_he_she_table()
        table["one"] = table.pop(1)
        self.assertRejected(table)

    def test_duplicate_id(self):
        table = closed_he_she_table()
        table["1"] = {"children": {}, "output": []}
        self.assertRejected(table)

    def test_missing_fields(self):
        table = closed_he_she_table()
        del table[4]["output"]
        self.assertRejected(table)

    def test_output_not_ending_at_node(self):
        table = closed_he_she_table()
        table[3]["output"] = ["xyz"]
        self.assertRejected(table)

    def test_derived_output_not_a_keyword(self):
        table = closed_he_she_table()
        table[5]["output"] = ["she", "he", "e"]
        self.assertRejected(table)

    def test_output_on_root(self):
        table = closed_he_she_table()
        table[0]["output"] = [""]
        self.assertRejected(table)

    def test_undecodable_blobs(self):
        with self.assertRaises(TableStructureError):
            loads_table(b"\xff\xfe", "json")
        with self.assertRaises(TableStructureError):
            loads_table(b"{not json", "json")
        with self.assertRaises(TableStructureError):
            loads_table(b"garbage", "pickle")
        with self.assertRaises(TableStructureError):
            loads_table(b"[" * 200000, "json")


if __name__ == "__main__":
    unittest.main()
