import pytest

from sheet_ledger.sheets import handler
from sheet_ledger.sheets.handler import (
    TRANSACTION_COLUMNS,
    TransactionNotFoundError,
    find_transaction_row,
    normalize_rows,
)


def test_normalize_rows_skips_header_and_pads_missing_cells():
    rows = [
        list(TRANSACTION_COLUMNS),
        ["txn-1", "2024-01-01", "food", "Lunch", "120", "thanks"],
        ["txn-2", "2024-01-02"],
    ]

    records = normalize_rows(rows)

    assert records[0]["reply"] == "thanks"
    assert records[1] == {
        "id": "txn-2",
        "date": "2024-01-02",
        "categories": "",
        "title": "",
        "text": "",
        "reply": "",
    }


def test_normalize_rows_handles_empty_sheet():
    assert normalize_rows([]) == []
    assert normalize_rows([list(TRANSACTION_COLUMNS)]) == []


def test_find_transaction_row_returns_first_match_and_sheet_row_number():
    rows = [
        list(TRANSACTION_COLUMNS),
        ["txn-1", "a"],
        ["txn-2", "b"],
        ["txn-2", "c"],
    ]

    row_number, values = find_transaction_row(rows, "txn-2")

    assert row_number == 3
    assert values["date"] == "b"


def test_find_transaction_row_never_matches_header():
    with pytest.raises(TransactionNotFoundError):
        find_transaction_row([list(TRANSACTION_COLUMNS)], "id")


def test_find_transaction_row_skips_blank_rows():
    rows = [list(TRANSACTION_COLUMNS), [], ["txn-9"]]
    assert find_transaction_row(rows, "txn-9")[0] == 3


def test_create_transaction_appends_one_row(worksheet):
    record = handler.create_transaction({
        "date": "2024-02-01",
        "category": "rent",
        "title": "February rent",
        "amount": "15000",
    })

    assert record["id"].startswith("txn-")
    assert len(worksheet.rows) == 2
    assert worksheet.rows[1] == [record["id"], "2024-02-01", "rent", "February rent", "15000", ""]

    append_call = [call for call in worksheet.calls if call[0] == "append_row"][0]
    assert append_call[2:] == ("USER_ENTERED", "INSERT_ROWS")


def test_create_transaction_defaults_category(worksheet):
    record = handler.create_transaction({"title": "Misc", "amount": "5", "category": ""})

    assert record["category"] == "一般"
    assert worksheet.rows[1][2] == "一般"
    assert worksheet.rows[1][1] == ""


def test_created_record_round_trips_through_list(worksheet):
    created = handler.create_transaction({
        "date": "2024-02-01",
        "category": "rent",
        "title": "February rent",
        "amount": "15000",
    })

    listed = handler.list_transactions()

    assert listed == [created]
    assert listed[0]["category_name"] == "rent"
    assert listed[0]["category_color_hex"] == "#333333"


def test_list_transactions_keeps_sheet_order(seeded_worksheet):
    ids = [record["id"] for record in handler.list_transactions()]
    assert ids == ["txn-1", "txn-2", "txn-3"]


def test_update_changes_only_supplied_fields(seeded_worksheet):
    record = handler.update_transaction("txn-2", {"reply": "noted"})

    assert seeded_worksheet.rows[2] == ["txn-2", "2024-01-02", "travel", "Bus", "30", "noted"]
    assert record["reply"] == "noted"
    assert record["amount"] == "30"
    assert seeded_worksheet.rows[1] == ["txn-1", "2024-01-01", "food", "Lunch", "120", ""]


def test_update_accepts_api_and_column_names(seeded_worksheet):
    handler.update_transaction("txn-1", {"category": "groceries", "amount": "99"})
    assert seeded_worksheet.rows[1][2:5] == ["groceries", "Lunch", "99"]

    handler.update_transaction("txn-1", {"categories": "eating out", "text": "101"})
    assert seeded_worksheet.rows[1][2:5] == ["eating out", "Lunch", "101"]


@pytest.mark.parametrize(
    "changes",
    [
        {"amount": "1", "text": "2", "category": "api", "categories": "column"},
        {"text": "2", "amount": "1", "categories": "column", "category": "api"},
    ],
)
def test_api_names_win_over_column_names(seeded_worksheet, changes):
    record = handler.update_transaction("txn-1", changes)

    assert record["amount"] == "1"
    assert record["category"] == "api"
    assert seeded_worksheet.rows[1][2:5] == ["api", "Lunch", "1"]


def test_numeric_amounts_are_stored_as_text(worksheet):
    record = handler.create_transaction({"title": "Refund", "amount": 0})

    assert record["amount"] == "0"
    assert worksheet.rows[1][4] == "0"


def test_update_ignores_id_and_unknown_fields(seeded_worksheet):
    handler.update_transaction("txn-1", {"id": "txn-999", "colour": "red", "title": "Brunch"})

    assert seeded_worksheet.rows[1] == ["txn-1", "2024-01-01", "food", "Brunch", "120", ""]


def test_update_rewrites_whole_row_in_place(seeded_worksheet):
    handler.update_transaction("txn-3", {"reply": "late"})

    update_call = [call for call in seeded_worksheet.calls if call[0] == "update"][0]
    assert update_call[1] == "A4:F4"
    assert update_call[2] == [["txn-3", "2024-01-03", "food", "Dinner", "250", "late"]]
    assert update_call[3] == "USER_ENTERED"


def test_update_unknown_id_raises(seeded_worksheet):
    with pytest.raises(TransactionNotFoundError):
        handler.update_transaction("txn-404", {"reply": "?"})

    assert not [call for call in seeded_worksheet.calls if call[0] == "update"]


def test_delete_removes_exactly_one_row_and_keeps_order(seeded_worksheet):
    before = [list(row) for row in seeded_worksheet.rows]

    handler.delete_transaction("txn-2")

    assert seeded_worksheet.rows == [before[0], before[1], before[3]]
    assert ("delete_rows", 3, None) in seeded_worksheet.calls


def test_delete_unknown_id_raises(seeded_worksheet):
    with pytest.raises(TransactionNotFoundError):
        handler.delete_transaction("txn-404")

    assert len(seeded_worksheet.rows) == 4


def test_initialize_sheets_writes_missing_header(worksheet):
    worksheet.rows = []

    assert handler.initialize_sheets() is True
    assert worksheet.rows == [list(TRANSACTION_COLUMNS)]


def test_initialize_sheets_reports_mismatched_header(worksheet):
    worksheet.rows = [["when", "what"]]

    assert handler.initialize_sheets() is False
    assert worksheet.rows == [["when", "what"]]
