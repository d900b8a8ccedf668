import tempfile
import unittest
from pathlib import Path

from elevsense.dataio.log_loader import column, load_csv


class LoadCsvTests(unittest.TestCase):
    def _write(self, text: str) -> Path:
        tmp = tempfile.NamedTemporaryFile("w", suffix=".csv", delete=False, encoding="utf-8")
        with tmp:
            tmp.write(text)
        self.addCleanup(Path(tmp.name).unlink)
        return Path(tmp.name)

    def test_csv_with_header(self) -> None:
        path = self._write("internal_ewma_t_ms,internal_ewma\n0,1.5\n100,2.5\n")

        columns, data = load_csv(path)

        self.assertEqual(columns, ["internal_ewma_t_ms", "internal_ewma"])
        self.assertEqual(data.shape, (2, 2))
        self.assertEqual(column(columns, data, "internal_ewma").tolist(), [1.5, 2.5])

    def test_csv_without_header(self) -> None:
        path = self._write("1,2,3\n4,5,6\n")

        columns, data = load_csv(path)

        self.assertEqual(columns, ["col0", "col1", "col2"])
        self.assertEqual(data.shape, (2, 3))

    def test_single_row_stays_two_dimensional(self) -> None:
        path = self._write("a,b\n1,2\n")

        _, data = load_csv(path)

        self.assertEqual(data.shape, (1, 2))

    def test_header_only(self) -> None:
        path = self._write("a,b,c\n")

        columns, data = load_csv(path)

        self.assertEqual(columns, ["a", "b", "c"])
        self.assertEqual(data.shape, (0, 3))

    def test_missing_column(self) -> None:
        path = self._write("a,b\n1,2\n")
        columns, data = load_csv(path)

        with self.assertRaises(KeyError):
            column(columns, data, "c")


if __name__ == "__main__":
    unittest.main()
