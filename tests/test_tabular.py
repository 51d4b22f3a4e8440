"""Fixed-width table rendering tests."""

from __future__ import annotations

from infrabase.utils.tabular import RIGHT, column_widths, render_table


class TestColumnWidths:
    def test_max_per_column(self):
        assert column_widths([["a", "bbb"], ["cccc", "d"]]) == [4, 3]

    def test_ragged_rows(self):
        assert column_widths([["a"], ["bb", "c", "ddd"], []]) == [2, 1, 3]

    def test_no_rows(self):
        assert column_widths([]) == []


class TestRenderTable:
    def test_columns_line_up(self):
        out = render_table([["a", "bbb"], ["cccc", "d"]])
        assert out == "a     bbb\ncccc  d  \n"

    def test_header_widens_columns(self):
        out = render_table([["web1", "ivan"]], header=["HOSTNAME", "OWNER"])
        assert out.splitlines() == ["HOSTNAME  OWNER", "web1      ivan "]

    def test_every_cell_padded_to_column_width(self):
        rows = [["host1", "x"], ["host10", "longer"], ["h", ""]]
        lines = render_table(rows, header=["NAME", "VALUE"]).splitlines()
        assert len({len(line) for line in lines}) == 1
        starts = {line.index(cell) for line, cell in zip(lines, ["VALUE", "x", "longer"])}
        assert starts == {8}

    def test_zero_rows_with_header(self):
        assert render_table([], header=["HOSTNAME", "OWNER"]) == "HOSTNAME  OWNER\n"

    def test_zero_rows_without_header(self):
        assert render_table([]) == ""

    def test_ragged_rows_render_only_their_cells(self):
        out = render_table([["a"], ["bb", "c", "ddd"]])
        assert out == "a \nbb  c  ddd\n"

    def test_nothing_truncated(self):
        long = "x" * 300
        assert long in render_table([[long, "y"]])

    def test_right_alignment(self):
        out = render_table([["web1", "2"], ["web10", "12"]], header=["HOST", "N"], align={1: RIGHT})
        assert out.splitlines() == ["HOST    N", "web1    2", "web10  12"]

    def test_custom_separator(self):
        assert render_table([["a", "b"]], separator=" | ") == "a | b\n"

    def test_accepts_generators(self):
        rows = (["h" + str(i), str(i)] for i in range(3))
        assert render_table(rows).count("\n") == 3
