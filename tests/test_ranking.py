import unittest
from datetime import datetime, timezone

from holdings_service.ranking.engine import parse_percent, merge_rows, rank, build_snapshot
from holdings_service.ranking.models import RawRow, HoldingEntry, Snapshot
from holdings_service.resolver.core import TickerResolver

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


def rows(*cells):
    return [RawRow(company_name=c, percent_text=p, row_id=f"id{i}", ordinal=i) for i, (c, p) in enumerate(cells)]


class TestParsePercent(unittest.TestCase):
    def test_valid(self):
        self.assertAlmostEqual(parse_percent("8.91%"), 8.91)
        self.assertAlmostEqual(parse_percent(" 0.5 % "), 0.5)
        self.assertAlmostEqual(parse_percent("3"), 3.0)

    def test_malformed(self):
        for text in ("n/a", "", "%", None, "nan", "inf", "-1.2%", "1.2.3%"):
            self.assertIsNone(parse_percent(text), text)


class TestMergeAndRank(unittest.TestCase):
    def setUp(self):
        self.resolver = TickerResolver(
            tickers={
                "Apple Inc": "AAPL",
                "Microsoft Corp": "MSFT",
                "Alphabet Inc Class A": "GOOGL",
                "Alphabet Inc Class C": "GOOG",
            },
            aliases={"GOOGL": "GOOG"},
        )

    def test_merge_example_both_resolve_to_same_ticker(self):
        resolver = TickerResolver(tickers={"Alphabet Inc Class A": "GOOG", "Alphabet Inc Class C": "GOOG"})
        snap = build_snapshot(rows(("Alphabet Inc Class A", "3.0%"), ("Alphabet Inc Class C", "2.0%")), resolver, now=NOW)
        self.assertEqual(snap.item_count, 1)
        self.assertEqual(snap.items[0].ticker, "GOOG")
        self.assertAlmostEqual(snap.items[0].percent, 5.0)
        self.assertEqual(snap.items[0].position, 1)
        # neither listing differs from the target, so the first row is canonical
        self.assertEqual(snap.items[0].company, "Alphabet Inc Class A")
        self.assertEqual(snap.items[0].id, "id0")

    def test_canonical_member_is_target_listing(self):
        snap = build_snapshot(rows(
            ("Apple Inc", "9.0%"),
            ("Alphabet Inc Class A", "2.5%"),
            ("Microsoft Corp", "8.0%"),
            ("Alphabet Inc Class C", "2.4%"),
        ), self.resolver, now=NOW)
        goog = [e for e in snap.items if e.ticker == "GOOG"]
        self.assertEqual(len(goog), 1)
        self.assertEqual(goog[0].company, "Alphabet Inc Class C")
        self.assertEqual(goog[0].id, "id3")
        self.assertAlmostEqual(goog[0].percent, 4.9)
        self.assertEqual([e.ticker for e in snap.items], ["AAPL", "MSFT", "GOOG"])

    def test_any_collision_is_merged(self):
        snap = build_snapshot(rows(("Foo", "1%"), ("Bar", "1%"), ("Foo", "2%")), self.resolver, now=NOW)
        self.assertEqual([(e.ticker, e.percent) for e in snap.items], [("Foo", 3.0), ("Bar", 1.0)])

    def test_rank_and_uniqueness_invariants(self):
        snap = build_snapshot(rows(
            ("A Co", "1.5%"), ("Apple Inc", "9%"), ("B Co", "n/a"), ("Alphabet Inc Class C", "2%"),
            ("C Co", "1.5%"), ("Alphabet Inc Class A", "2.1%"), ("Microsoft Corp", "8.7%"),
        ), self.resolver, now=NOW)
        items = snap.items
        for i in range(len(items) - 1):
            self.assertGreaterEqual(items[i].percent, items[i + 1].percent)
        self.assertEqual([e.position for e in items], list(range(1, len(items) + 1)))
        tickers = [e.ticker for e in items]
        self.assertEqual(len(tickers), len(set(tickers)))
        self.assertEqual(snap.item_count, len(items))

    def test_ties_keep_first_seen_order(self):
        snap = build_snapshot(rows(("C Co", "1%"), ("A Co", "1%"), ("B Co", "1%")), self.resolver, now=NOW)
        self.assertEqual([e.company for e in snap.items], ["C Co", "A Co", "B Co"])

    def test_mass_conservation(self):
        cells = [("Apple Inc", "9.1%"), ("Alphabet Inc Class A", "2.2%"), ("Alphabet Inc Class C", "2.1%"),
                 ("X Co", "0.3%"), ("X Co", "0.2%"), ("Bad Co", "garbage")]
        snap = build_snapshot(rows(*cells), self.resolver, now=NOW)
        parsed = sum(parse_percent(p) or 0.0 for _, p in cells)
        self.assertAlmostEqual(sum(e.percent for e in snap.items), parsed)

    def test_malformed_percentage_becomes_zero(self):
        snap = build_snapshot(rows(("Apple Inc", "9%"), ("Odd Co", "n/a")), self.resolver, now=NOW)
        odd = [e for e in snap.items if e.company == "Odd Co"][0]
        self.assertEqual(odd.percent, 0.0)
        self.assertEqual(odd.position, 2)

    def test_unmapped_company_keeps_name_as_ticker(self):
        snap = build_snapshot(rows(("Unmapped Co", "1%")), self.resolver, now=NOW)
        self.assertEqual(snap.items[0].ticker, "Unmapped Co")

    def test_deterministic(self):
        cells = [("Apple Inc", "9%"), ("Alphabet Inc Class A", "2%"), ("Alphabet Inc Class C", "2%")]
        a = build_snapshot(rows(*cells), self.resolver, now=NOW)
        b = build_snapshot(rows(*cells), self.resolver, now=NOW)
        self.assertEqual(a, b)

    def test_empty_rows(self):
        snap = build_snapshot([], self.resolver, now=NOW)
        self.assertEqual(snap.item_count, 0)
        self.assertEqual(snap.timestamp, NOW)

    def test_rank_assigns_positions(self):
        out = rank([
            HoldingEntry(position=0, company="a", ticker="a", percent=1.0, id=""),
            HoldingEntry(position=0, company="b", ticker="b", percent=2.0, id=""),
        ])
        self.assertEqual([(e.ticker, e.position) for e in out], [("b", 1), ("a", 2)])

    def test_merge_rows_leaves_positions_unassigned(self):
        out = merge_rows(rows(("Apple Inc", "1%")), self.resolver)
        self.assertEqual(out[0].position, 0)


class TestSnapshotShape(unittest.TestCase):
    def test_to_dict(self):
        snap = Snapshot(timestamp=NOW, items=[HoldingEntry(1, "Apple Inc", "AAPL", 9.0, "r1")])
        d = snap.to_dict()
        self.assertEqual(d["timestamp"], "2025-03-01T12:00:00.000Z")
        self.assertEqual(d["itemCount"], 1)
        self.assertEqual(d["items"][0], {"position": 1, "company": "Apple Inc", "ticker": "AAPL", "percent": 9.0, "id": "r1"})

    def test_from_dict_round_trip(self):
        snap = Snapshot(timestamp=NOW, items=[HoldingEntry(1, "Apple Inc", "AAPL", 9.0, "r1")])
        self.assertEqual(Snapshot.from_dict(snap.to_dict()), snap)

    def test_from_dict_rejects_count_mismatch(self):
        d = Snapshot(timestamp=NOW, items=[]).to_dict()
        d["itemCount"] = 3
        with self.assertRaises(ValueError):
            Snapshot.from_dict(d)

    def test_items_are_immutable(self):
        snap = Snapshot(timestamp=NOW, items=[HoldingEntry(1, "Apple Inc", "AAPL", 9.0, "r1")])
        self.assertIsInstance(snap.items, tuple)
        with self.assertRaises(Exception):
            snap.items[0].percent = 1.0


if __name__ == "__main__":
    unittest.main()
