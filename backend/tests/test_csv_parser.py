import unittest
from datetime import date
from decimal import Decimal

from backend.csv_parser import (
    export_filename,
    export_transactions_csv,
    parse_decimal,
    parse_transactions_csv,
)
from backend.models import Expense


def sequential_ids():
    counter = iter(range(1, 1000))
    return lambda: f"row-{next(counter)}"


class CSVExportTests(unittest.TestCase):
    def test_export_quotes_descriptions_and_fills_currency(self) -> None:
        expenses = [
            Expense(
                id="1",
                description='Dinner, "The Place"',
                amount=Decimal("42.50"),
                category="Food",
                date="2024-03-01",
            ),
            Expense(
                id="2",
                description="Train",
                amount=Decimal("7"),
                category="Transport",
                date="2024-03-02",
                currency="EUR",
            ),
        ]

        contents = export_transactions_csv(expenses, "USD")

        self.assertEqual(
            contents.split("\n"),
            [
                "Date,Description,Category,Amount,Currency",
                '2024-03-01,"Dinner, ""The Place""",Food,42.50,USD',
                '2024-03-02,"Train",Transport,7,EUR',
            ],
        )

    def test_export_can_omit_currency_column(self) -> None:
        contents = export_transactions_csv([], "USD", include_currency=False)

        self.assertEqual(contents, "Date,Description,Category,Amount")

    def test_export_filename_uses_iso_date(self) -> None:
        self.assertEqual(export_filename(date(2024, 5, 9)), "transactions_2024-05-09.csv")


class CSVImportTests(unittest.TestCase):
    def test_parses_exported_rows(self) -> None:
        contents = "\n".join(
            [
                "Date,Description,Category,Amount,Currency",
                '2024-03-01,"Dinner, ""The Place""",Food,42.50,eur',
                "2024-03-02,Coffee,Food,3.20",
            ]
        )

        result = parse_transactions_csv(contents, "USD", id_factory=sequential_ids())

        self.assertEqual(result.imported_count, 2)
        self.assertEqual(result.issues, [])
        first, second = result.rows
        self.assertEqual(first.id, "row-1")
        self.assertEqual(first.description, 'Dinner, "The Place"')
        self.assertEqual(first.amount, Decimal("42.50"))
        self.assertEqual(first.currency, "EUR")
        self.assertEqual(second.currency, "USD")
        self.assertEqual(result.summary_message(), "Successfully imported 2 transactions.")

    def test_first_row_without_header_is_data(self) -> None:
        result = parse_transactions_csv("2024-03-02,Coffee,Food,3.20", "USD")

        self.assertEqual(result.imported_count, 1)

    def test_bad_rows_are_reported_and_skipped(self) -> None:
        contents = "\r\n".join(
            [
                "Date,Description,Category,Amount",
                "2024-03-01,Short row",
                "2024-03-02,Coffee,Food,abc",
                ",Coffee,Food,3",
                "2024-03-04,Refund,Food,-5",
                "",
                "2024-03-05,Lunch,,12",
            ]
        )

        result = parse_transactions_csv(contents, "USD")

        self.assertEqual(result.imported_count, 1)
        self.assertEqual(result.rows[0].category, "Other")
        self.assertEqual([issue.line_number for issue in result.issues], [2, 3, 4, 5])
        self.assertIn("Invalid amount", result.issues[1].reason)

    def test_empty_file_has_no_transactions(self) -> None:
        result = parse_transactions_csv("Date,Description,Category,Amount\n", "USD")

        self.assertEqual(result.imported_count, 0)
        self.assertEqual(result.summary_message(), "No valid transactions found in file.")

    def test_export_then_import_preserves_fields(self) -> None:
        original = Expense(
            id="9",
            description="Books, pens",
            amount=Decimal("19.99"),
            category="Education",
            date="2024-04-01",
            currency="GBP",
        )

        result = parse_transactions_csv(export_transactions_csv([original], "USD"), "USD")

        imported = result.rows[0]
        self.assertEqual(
            (imported.date, imported.description, imported.category, imported.amount, imported.currency),
            ("2024-04-01", "Books, pens", "Education", Decimal("19.99"), "GBP"),
        )

    def test_description_with_line_break_survives_round_trip(self) -> None:
        expenses = [
            Expense(description="line1\nline2", amount=Decimal("4"), category="Food", date="2024-04-02"),
            Expense(description="Tea", amount=Decimal("2"), category="Food", date="2024-04-03"),
        ]

        result = parse_transactions_csv(export_transactions_csv(expenses, "USD"), "USD")

        self.assertEqual(result.issues, [])
        self.assertEqual([row.description for row in result.rows], ["line1\nline2", "Tea"])

    def test_issue_line_numbers_count_physical_lines(self) -> None:
        contents = 'Date,Description,Category,Amount\n2024-04-02,"two\nlines",Food,4\n2024-04-03,Tea,Food,x\n'

        result = parse_transactions_csv(contents, "USD")

        self.assertEqual(result.imported_count, 1)
        self.assertEqual([issue.line_number for issue in result.issues], [4])


class ParseDecimalTests(unittest.TestCase):
    def test_accepts_currency_formatting(self) -> None:
        self.assertEqual(parse_decimal(" $1,234.50 "), Decimal("1234.50"))
        self.assertEqual(parse_decimal("(12.00)"), Decimal("-12.00"))

    def test_rejects_non_numbers(self) -> None:
        self.assertIsNone(parse_decimal(""))
        self.assertIsNone(parse_decimal("twelve"))
        self.assertIsNone(parse_decimal("NaN"))
        self.assertIsNone(parse_decimal("Infinity"))


if __name__ == "__main__":
    unittest.main()
