import unittest

from db.models import OrderLineInput
from utils.pure import device_label, generate_markdown_table, total_pieces


class PureTestCase(unittest.TestCase):
    def test_markdown_table(self):
        md = generate_markdown_table(["SKU", "Qty"], [["47201-04150", 2]], ["l", "c"])
        self.assertEqual(
            md.splitlines(),
            ["| SKU | Qty |", "| :--- | :---: |", "| 47201-04150 | 2 |"],
        )

    def test_markdown_table_escapes_cells(self):
        md = generate_markdown_table(["Comment", "ETA"], [["a|b\nc", None]], ["l", "l"])
        self.assertEqual(md.splitlines()[-1], "| a\\|b c | - |")

    def test_markdown_table_edge_cases(self):
        self.assertEqual(generate_markdown_table(["A"], []), "")
        # without headers the first row is used
        md = generate_markdown_table(None, [["Code", "C001"], ["Name", "Norte"]], ["l", "l"])
        self.assertTrue(md.startswith("| Code | C001 |"))
        with self.assertRaises(ValueError):
            generate_markdown_table(["A", "B"], [[1, 2]], ["l"])

    def test_total_pieces(self):
        lines = [OrderLineInput("X", 1, 2, 3), OrderLineInput("Y", 4)]
        self.assertEqual(total_pieces(lines), 10)
        self.assertEqual(total_pieces([]), 0)

    def test_device_label(self):
        self.assertTrue(device_label().startswith("Terminal ("))
