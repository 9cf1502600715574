import asyncio
import json
from datetime import date, timedelta

import httpx

from finsensei.services.proxy import UpstreamProxy
from finsensei.utils import RateLimiter

from conftest import StubAIClient

CHAT_BODY = {
    "message": "Am I overspending?",
    "context": {
        "accounts": [{"account_name": "Checking", "balance": 100}],
        "recentTransactions": [
            {"type": "income", "amount": 50, "source": "Gift", "date": "2024-01-01"},
            {"type": "expense", "amount": -20, "source": "Food", "date": "2024-01-02"},
        ],
    },
    "history": [{"role": "assistant", "content": "Hi, how can I help?"}],
}


def _mock_upstream(app, handler):
    app.state.proxy = UpstreamProxy("https://upstream.test", transport=httpx.MockTransport(handler))


def test_root_and_health(client):
    assert client.get("/").json()["status"] == "running"
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_chat_returns_response(client, ai_client):
    response = client.post("/api/chat", json=CHAT_BODY)
    assert response.status_code == 200
    assert response.json() == {"response": "Start by building an emergency fund."}

    prompt = ai_client.completions.calls[0]["messages"][-1]["content"]
    assert "Total Income: $50.00" in prompt
    assert "Total Expenses: $20.00" in prompt
    assert "Net Balance: $100.00" in prompt
    assert "User: Am I overspending?" in prompt


def test_chat_malformed_body_returns_500(client):
    response = client.post("/api/chat", content="not json", headers={"Content-Type": "application/json"})
    assert response.status_code == 500
    assert response.json() == {"error": "Failed to process chat message"}

    response = client.post("/api/chat", json={"message": "hi"})
    assert response.status_code == 500
    assert response.json() == {"error": "Failed to process chat message"}


def test_chat_ai_failure_returns_500(app, client):
    app.state.coach.client = StubAIClient(error=RuntimeError("boom"))
    response = client.post("/api/chat", json=CHAT_BODY)
    assert response.status_code == 500
    assert response.json() == {"error": "Failed to process chat message"}


def test_chat_persists_exchange_when_user_given(client):
    response = client.post("/api/chat", json={**CHAT_BODY, "userId": "user-1"})
    assert response.status_code == 200

    history = client.get("/api/users/user-1/chat-history").json()
    assert [(m["role"], m["content"]) for m in history] == [
        ("user", "Am I overspending?"),
        ("assistant", "Start by building an emergency fund."),
    ]

    assert client.delete("/api/users/user-1/chat-history").json() == {"status": "success"}
    assert client.get("/api/users/user-1/chat-history").json() == []


def test_chat_rate_limit(app, client):
    app.state.chat_rate_limiter = RateLimiter(max_requests=1, window_seconds=60)
    assert client.post("/api/chat", json=CHAT_BODY).status_code == 200

    response = client.post("/api/chat", json=CHAT_BODY)
    assert response.status_code == 429
    assert "Retry-After" in response.headers


def test_accounts_transactions_and_metrics(client):
    account = client.post("/api/users/user-1/accounts", json={"account_name": "Checking", "balance": 100})
    assert account.status_code == 201
    account_id = account.json()["id"]

    today = date.today().isoformat()
    income = client.post("/api/users/user-1/transactions", json={
        "account_id": account_id, "transaction_type": "income",
        "source": "Salary", "amount": 50, "date": today
    })
    assert income.status_code == 201
    expense = client.post("/api/users/user-1/transactions", json={
        "account_id": account_id, "transaction_type": "expense",
        "source": "Rent", "amount": 20, "date": today
    })
    assert expense.status_code == 201

    accounts = client.get("/api/users/user-1/accounts").json()
    assert accounts[0]["balance"] == 130.0

    metrics = client.get("/api/users/user-1/metrics").json()
    assert metrics["totalIncome"] == 50.0
    assert metrics["totalExpenses"] == 20.0
    assert metrics["netBalance"] == 130.0
    assert metrics["formatted"]["netBalance"] == "$130.00"

    assert len(client.get("/api/users/user-1/transactions").json()) == 2


def test_metrics_for_unknown_user_are_zero(client):
    metrics = client.get("/api/users/nobody/metrics").json()
    assert metrics["totalIncome"] == 0
    assert metrics["netBalance"] == 0
    assert metrics["currency"] == "USD"


def test_transaction_validation(client):
    account_id = client.post("/api/users/user-1/accounts", json={"account_name": "Checking"}).json()["id"]
    base = {"account_id": account_id, "transaction_type": "expense", "source": "Rent", "amount": 10,
            "date": date.today().isoformat()}

    future = {**base, "date": (date.today() + timedelta(days=2)).isoformat()}
    assert client.post("/api/users/user-1/transactions", json=future).status_code == 422
    assert client.post("/api/users/user-1/transactions", json={**base, "amount": 0}).status_code == 422
    assert client.post("/api/users/user-1/transactions", json={**base, "source": "  "}).status_code == 422
    assert client.post("/api/users/user-1/transactions", json={**base, "transaction_type": "gift"}).status_code == 422
    assert client.post(
        "/api/users/user-1/transactions", json={**base, "transaction_type": "transfer"}
    ).status_code == 422

    # valid shape, but the account balance is zero
    assert client.post("/api/users/user-1/transactions", json=base).status_code == 400


def test_account_routes_check_owner(client):
    account_id = client.post("/api/users/user-1/accounts", json={"account_name": "Checking"}).json()["id"]
    assert client.put(f"/api/users/user-2/accounts/{account_id}", json={"account_name": "Mine"}).status_code == 404
    assert client.delete(f"/api/users/user-2/accounts/{account_id}").status_code == 404
    assert client.delete(f"/api/users/user-1/accounts/{account_id}").status_code == 200


def test_goal_routes(client):
    goal = client.post("/api/users/user-1/goals", json={
        "name": "Laptop", "target_amount": 100, "start_date": "2024-01-01", "target_date": "2024-06-01"
    })
    assert goal.status_code == 201
    goal_id = goal.json()["id"]

    contribution = client.post(f"/api/users/user-1/goals/{goal_id}/contributions", json={
        "amount": 100, "contribution_date": "2024-02-01"
    })
    assert contribution.status_code == 201

    goals = client.get("/api/users/user-1/goals").json()
    assert goals[0]["status"] == "completed"
    assert goals[0]["current_amount"] == 100.0
    assert len(client.get(f"/api/users/user-1/goals/{goal_id}/contributions").json()) == 1
    assert client.get(f"/api/users/user-2/goals/{goal_id}/contributions").status_code == 404


def test_learning_routes(client):
    created = client.post("/api/learning", json={
        "title": "Budgeting 101", "description": "Basics", "status": "active", "is_featured": True
    })
    assert created.status_code == 201
    content_id = created.json()["id"]

    assert [c["id"] for c in client.get("/api/learning").json()] == [content_id]
    assert [c["id"] for c in client.get("/api/learning?featured=true").json()] == [content_id]

    assert client.put(f"/api/learning/{content_id}", json={"status": "draft"}).json()["status"] == "draft"
    assert client.get("/api/learning").json() == []
    assert client.delete(f"/api/learning/{content_id}").status_code == 200
    assert client.delete(f"/api/learning/{content_id}").status_code == 404


def test_advice(client, ai_client):
    client.post("/api/users/user-1/accounts", json={"account_name": "Savings", "balance": 500, "currency": "EUR"})
    response = client.get("/api/users/user-1/advice")
    assert response.status_code == 200
    assert response.json()["content"] == "Start by building an emergency fund."
    prompt = ai_client.completions.calls[0]["messages"][-1]["content"]
    assert "- Savings: €500.00" in prompt


def test_advice_failure(app, client):
    app.state.coach.client = None
    response = client.get("/api/users/user-1/advice")
    assert response.status_code == 500
    assert response.json() == {"error": "Failed to fetch financial advice"}


def test_proxy_forwards_request(app, client):
    seen = {}

    def handler(request: httpx.Request):
        seen["method"] = request.method
        seen["url"] = str(request.url)
        seen["body"] = request.content
        seen["content_type"] = request.headers["content-type"]
        return httpx.Response(200, json={"accounts": [{"id": 1}]})

    _mock_upstream(app, handler)
    response = client.put("/api/accounts/1/?expand=true", content=json.dumps({"balance": 5}),
                          headers={"Authorization": "Token abc"})

    assert response.status_code == 200
    assert response.json() == {"accounts": [{"id": 1}]}
    assert response.headers["Access-Control-Allow-Origin"] == "*"
    assert seen["method"] == "PUT"
    assert seen["url"] == "https://upstream.test/api/accounts/1/?expand=true"
    assert json.loads(seen["body"]) == {"balance": 5}
    assert seen["content_type"] == "application/json"


def test_proxy_does_not_pass_upstream_status(app, client):
    _mock_upstream(app, lambda request: httpx.Response(404, json={"detail": "Not found."}))
    response = client.get("/api/transactions/")
    assert response.status_code == 200
    assert response.json() == {"detail": "Not found."}


def test_proxy_failure_returns_500(app, client):
    def handler(request):
        raise httpx.ConnectError("upstream down")

    _mock_upstream(app, handler)
    response = client.delete("/api/accounts/1/")
    assert response.status_code == 500
    assert response.json() == {"error": "Internal Server Error"}

    _mock_upstream(app, lambda request: httpx.Response(200, text="<html>oops</html>"))
    assert client.get("/api/accounts/").status_code == 500


def test_proxy_preflight(client):
    response = client.options("/api/accounts/")
    assert response.status_code == 204
    assert response.headers["Access-Control-Allow-Methods"] == "GET, POST, PUT, DELETE, OPTIONS"


def test_transaction_update_rejects_transfer_to_same_account(client):
    account_id = client.post("/api/users/user-1/accounts", json={"account_name": "Checking"}).json()["id"]
    response = client.put("/api/users/user-1/transactions/any", json={
        "account_id": account_id, "to_account_id": account_id
    })
    assert response.status_code == 422


def test_chat_database_work_runs_off_the_event_loop(monkeypatch, client):
    calls = []

    def record(name, result):
        def wrapper(*args, **kwargs):
            try:
                asyncio.get_running_loop()
                calls.append((name, "event loop"))
            except RuntimeError:
                calls.append((name, "worker thread"))
            return result
        return wrapper

    monkeypatch.setattr("finsensei.chat_api.save_chat_message", record("save", None))
    monkeypatch.setattr("finsensei.chat_api.get_accounts", record("accounts", []))
    monkeypatch.setattr("finsensei.chat_api.get_transactions", record("transactions", []))

    assert client.post("/api/chat", json={**CHAT_BODY, "userId": "user-1"}).status_code == 200
    assert client.get("/api/users/user-1/advice").status_code == 200
    assert calls == [
        ("save", "worker thread"),
        ("save", "worker thread"),
        ("accounts", "worker thread"),
        ("transactions", "worker thread"),
    ]
