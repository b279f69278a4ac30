import datetime as dt

from dompetku.models.transaction import TransactionPublic
from dompetku.utils.analyzer import CashflowAnalyzer, month_key

analyzer = CashflowAnalyzer()

sample_transactions = [
    {"type": "income", "amount": 100, "month": "2025-01"},
    {"type": "expense", "amount": 40, "month": "2025-01"},
    {"type": "income", "amount": 50, "month": "2025-02"},
]


def test_summarize_january():
    summary = analyzer.summarize_month(sample_transactions, "2025-01")
    assert summary.total_income == 100
    assert summary.total_expense == 40
    assert summary.balance == 60
    assert summary.transaction_count == 2


def test_summarize_february():
    summary = analyzer.summarize_month(sample_transactions, "2025-02")
    assert (summary.total_income, summary.total_expense, summary.balance) == (50, 0, 50)


def test_month_without_transactions_is_all_zero():
    summary = analyzer.summarize_month(sample_transactions, "2024-12")
    assert summary.to_dict() == {
        "month": "2024-12",
        "total_income": 0.0,
        "total_expense": 0.0,
        "balance": 0.0,
        "transaction_count": 0,
    }


def test_empty_input():
    summary = analyzer.summarize_month([], "2025-01")
    assert summary.total_income == summary.total_expense == summary.balance == 0


def test_balance_is_income_minus_expense():
    transactions = [
        {"type": "income", "amount": 0.1, "month": "2025-05"},
        {"type": "income", "amount": 0.2, "month": "2025-05"},
        {"type": "expense", "amount": 1000.55, "month": "2025-05"},
        {"type": "expense", "amount": 12.45, "month": "2025-05"},
        {"type": "income", "amount": 999, "month": "2025-06"},
    ]
    summary = analyzer.summarize_month(transactions, "2025-05")
    assert summary.total_income == 0.3
    assert summary.total_expense == 1013.0
    assert summary.balance == round(summary.total_income - summary.total_expense, 2)
    assert summary.balance == -1012.7


def test_accepts_model_objects():
    transactions = [
        TransactionPublic(
            id="t1", user_id="u1", type="income", amount=250000, description="Gaji",
            date=dt.date(2025, 3, 1), month="2025-03", created_at="",
        ),
        TransactionPublic(
            id="t2", user_id="u1", type="expense", amount=35000, description="Makan",
            date=dt.date(2025, 3, 2), month="2025-03", created_at="",
        ),
    ]
    summary = analyzer.summarize_month(transactions, "2025-03")
    assert summary.balance == 215000


def test_month_key():
    assert month_key(dt.date(2025, 3, 15)) == "2025-03"
    assert month_key("2025-12-01") == "2025-12"


def test_filter_by_month_keeps_order():
    analyzer = CashflowAnalyzer()
    rows = [
        {"id": "b", "month": "2025-01"},
        {"id": "x", "month": "2025-02"},
        {"id": "a", "month": "2025-01"},
    ]
    assert [row["id"] for row in analyzer.filter_by_month(rows, "2025-01")] == ["b", "a"]


def test_month_options_cross_year_boundary():
    analyzer = CashflowAnalyzer()
    options = analyzer.month_options(dt.date(2025, 2, 20), count=4)
    assert [option["value"] for option in options] == ["2025-02", "2025-01", "2024-12", "2024-11"]
    assert options[0]["label"] == "February 2025"


def test_month_options_default_window():
    assert len(CashflowAnalyzer().month_options(dt.date(2025, 7, 1))) == 12


def test_recent_limit():
    analyzer = CashflowAnalyzer(recent_limit=3)
    assert analyzer.recent(list(range(10))) == [0, 1, 2]
