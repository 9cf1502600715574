from datetime import date
from decimal import Decimal

from finsensei.models import ChatRole
from finsensei.services.accounts import (
    check_connection, get_accounts, get_account, create_account, update_account, delete_account
)
from finsensei.services.chat_history import save_chat_message, get_chat_history, clear_chat_history
from finsensei.services.goals import get_goals, create_goal, get_contributions, add_contribution
from finsensei.services.learning import get_active_content, create_content
from finsensei.services.transactions import get_transactions, create_transaction, update_transaction


def test_chat_history_round_trip(db):
    save_chat_message(db, "user-1", ChatRole.USER, "How am I doing?")
    save_chat_message(db, "user-1", "assistant", "You are saving 20% of income.")
    save_chat_message(db, "user-2", ChatRole.USER, "Unrelated")

    history = get_chat_history(db, "user-1")
    assert [m.role for m in history] == ["user", "assistant"]
    assert history[0].content == "How am I doing?"


def test_chat_history_limit(db):
    for i in range(5):
        save_chat_message(db, "user-1", ChatRole.USER, f"message {i}")
    assert len(get_chat_history(db, "user-1", limit=3)) == 3


def test_clear_chat_history_only_touches_owner(db):
    save_chat_message(db, "user-1", ChatRole.USER, "hi")
    save_chat_message(db, "user-2", ChatRole.USER, "hello")

    assert clear_chat_history(db, "user-1") is True
    assert get_chat_history(db, "user-1") == []
    assert len(get_chat_history(db, "user-2")) == 1


def test_account_crud(db):
    account = create_account(db, "user-1", "Checking", 100, currency="usd")
    assert account.id
    assert account.balance == Decimal("100")
    assert account.currency == "USD"
    assert account.account_type == "checking"

    updated = update_account(db, account.id, {"account_name": "Main", "balance": "75.50", "user_id": "hijack"})
    assert updated.account_name == "Main"
    assert updated.balance == Decimal("75.50")
    assert updated.user_id == "user-1"

    assert [a.id for a in get_accounts(db, "user-1")] == [account.id]
    assert delete_account(db, account.id) is True
    assert get_account(db, account.id) is None
    assert delete_account(db, account.id) is False


def test_update_missing_account_returns_none(db):
    assert update_account(db, "missing", {"account_name": "x"}) is None


def test_check_connection(db, broken_db):
    assert check_connection(db) == {"success": True, "error": None}
    result = check_connection(broken_db)
    assert result["success"] is False
    assert result["error"]


def test_persistence_functions_never_raise_on_database_errors(broken_db):
    assert get_chat_history(broken_db, "user-1") == []
    assert save_chat_message(broken_db, "user-1", ChatRole.USER, "hi") is None
    assert clear_chat_history(broken_db, "user-1") is False
    assert get_accounts(broken_db, "user-1") == []
    assert get_account(broken_db, "acc") is None
    assert create_account(broken_db, "user-1", "Checking", 10) is None
    assert update_account(broken_db, "acc", {"balance": 1}) is None
    assert delete_account(broken_db, "acc") is False
    assert get_transactions(broken_db, "user-1") == []
    assert create_transaction(broken_db, "user-1", {
        "account_id": "acc", "transaction_type": "income", "source": "x", "amount": 1, "date": None
    }) is None
    assert get_goals(broken_db, "user-1") == []
    assert get_contributions(broken_db, "goal") == []
    assert get_active_content(broken_db) == []
    assert create_content(broken_db, {"title": "t", "description": "d"}) is None


def test_persistence_functions_never_raise_on_bad_input(db):
    account = create_account(db, "user-1", "Checking", 100)
    goal = create_goal(db, "user-1", None, "Trip", "", 500, date(2024, 1, 1), date(2024, 12, 1))

    assert create_account(db, "user-1", "Broken", "abc") is None
    assert create_account(db, "user-1", "Broken", 10, currency=None) is None
    assert update_account(db, account.id, {"balance": "abc"}) is None
    assert create_transaction(db, "user-1", {"account_id": account.id, "amount": 5}) is None
    assert create_transaction(db, "user-1", {
        "account_id": account.id, "transaction_type": "income", "source": "x", "amount": "abc",
        "date": date(2024, 1, 1)
    }) is None
    txn = create_transaction(db, "user-1", {
        "account_id": account.id, "transaction_type": "income", "source": "x", "amount": 5,
        "date": date(2024, 1, 1)
    })
    assert update_transaction(db, txn.id, "user-1", {"amount": "abc"}) is None
    assert create_goal(db, "user-1", None, "Car", "", "abc", date(2024, 1, 1), date(2024, 12, 1)) is None
    assert add_contribution(db, goal.id, "abc", date(2024, 2, 1)) is None

    db.expire_all()
    assert get_account(db, account.id).balance == Decimal("105")
    assert [a.id for a in get_accounts(db, "user-1")] == [account.id]
