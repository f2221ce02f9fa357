import copy
from collections import defaultdict
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from app.core.errors import DataAccessError
from app.core.security import create_access_token
from app.main import app
from app.models.category import DEFAULT_OWNER_ID, category_to_record, default_categories
from app.routers.deps import get_store
from app.utils.connections import ConnectionRegistry
from app.utils.date_ranges import to_iso


class InMemoryStore:
    """Dict-backed stand-in for ``app.db.dynamo`` with the same function set."""

    def __init__(self):
        self.users: Dict[str, Dict[str, Any]] = {}
        self.tables: Dict[str, Dict[tuple, Dict[str, Any]]] = defaultdict(dict)
        self.failing = False
        self.calls: List[str] = []

    def _check(self, operation: str):
        self.calls.append(operation)
        if self.failing:
            raise DataAccessError(f"Data store error during {operation}")

    def _put(self, table: str, pk: str, sk: str, item: Dict[str, Any], operation: str):
        self._check(operation)
        self.tables[table][(item[pk], item[sk])] = copy.deepcopy(item)
        return item

    def _get(self, table: str, key: tuple, operation: str):
        self._check(operation)
        item = self.tables[table].get(key)
        return copy.deepcopy(item) if item else None

    def _query(self, table: str, pk_value: str, operation: str):
        self._check(operation)
        items = [(k, v) for k, v in self.tables[table].items() if k[0] == pk_value]
        items.sort(key=lambda kv: kv[0][1])
        return [copy.deepcopy(v) for _, v in items]

    def _update(self, table: str, key: tuple, updates: Dict[str, Any], operation: str):
        self._check(operation)
        item = self.tables[table].get(key)
        if item is None:
            return None
        item.update(copy.deepcopy(updates))
        return copy.deepcopy(item)

    def _delete(self, table: str, key: tuple, operation: str) -> bool:
        self._check(operation)
        return self.tables[table].pop(key, None) is not None

    # Users
    def get_user_by_email(self, email: str):
        self._check("get_user_by_email")
        for user in self.users.values():
            if user["email"] == email:
                return copy.deepcopy(user)
        return None

    def get_user_by_id(self, user_id: str):
        self._check("get_user_by_id")
        user = self.users.get(user_id)
        return copy.deepcopy(user) if user else None

    def put_user(self, item):
        self._check("put_user")
        self.users[item["user_id"]] = copy.deepcopy(item)
        return item

    def update_user(self, user_id, updates):
        self._check("update_user")
        user = self.users.get(user_id)
        if user is None:
            return None
        user.update(copy.deepcopy(updates))
        return copy.deepcopy(user)

    def list_user_ids(self):
        self._check("list_user_ids")
        return list(self.users)

    # Transactions
    def put_transaction(self, item):
        return self._put("transactions", "user_id", "transaction_id", item, "put_transaction")

    def get_transaction(self, user_id, transaction_id):
        return self._get("transactions", (user_id, transaction_id), "get_transaction")

    def find_transactions(self, user_id, start=None, end=None, type=None, category=None):
        items = self._query("transactions", user_id, "find_transactions")
        low = to_iso(start) if start else ""
        high = to_iso(end) + "#~" if end else "~"
        return [
            t for t in items
            if low <= t["transaction_id"] <= high
            and (type is None or t["type"] == type)
            and (category is None or t["category"] == category)
        ]

    def count_transactions(self, user_id, category=None):
        return len(self.find_transactions(user_id, category=category))

    def update_transaction(self, user_id, transaction_id, updates):
        return self._update("transactions", (user_id, transaction_id), updates, "update_transaction")

    def delete_transaction(self, user_id, transaction_id):
        return self._delete("transactions", (user_id, transaction_id), "delete_transaction")

    # Budgets
    def put_budget(self, item):
        return self._put("budgets", "user_id", "budget_id", item, "put_budget")

    def get_budget(self, user_id, budget_id):
        return self._get("budgets", (user_id, budget_id), "get_budget")

    def list_budgets(self, user_id, active_only=False):
        items = self._query("budgets", user_id, "list_budgets")
        return [b for b in items if b.get("is_active")] if active_only else items

    def update_budget(self, user_id, budget_id, updates):
        return self._update("budgets", (user_id, budget_id), updates, "update_budget")

    def delete_budget(self, user_id, budget_id):
        return self._delete("budgets", (user_id, budget_id), "delete_budget")

    # Goals
    def put_goal(self, item):
        return self._put("goals", "user_id", "goal_id", item, "put_goal")

    def get_goal(self, user_id, goal_id):
        return self._get("goals", (user_id, goal_id), "get_goal")

    def list_goals(self, user_id):
        return self._query("goals", user_id, "list_goals")

    def update_goal(self, user_id, goal_id, updates):
        return self._update("goals", (user_id, goal_id), updates, "update_goal")

    def delete_goal(self, user_id, goal_id):
        return self._delete("goals", (user_id, goal_id), "delete_goal")

    # Categories
    def put_category(self, item):
        return self._put("categories", "owner_id", "category_id", item, "put_category")

    def get_category(self, owner_id, category_id):
        return self._get("categories", (owner_id, category_id), "get_category")

    def list_categories(self, owner_id):
        return self._query("categories", owner_id, "list_categories")

    def update_category(self, owner_id, category_id, updates):
        return self._update("categories", (owner_id, category_id), updates, "update_category")

    def delete_category(self, owner_id, category_id):
        return self._delete("categories", (owner_id, category_id), "delete_category")

    def seed_default_categories(self):
        if self.list_categories(DEFAULT_OWNER_ID):
            return 0
        categories = default_categories()
        for category in categories:
            self.put_category(category_to_record(category))
        return len(categories)

    # Recurring
    def put_recurring(self, item):
        return self._put("recurring", "user_id", "recurring_id", item, "put_recurring")

    def get_recurring(self, user_id, recurring_id):
        return self._get("recurring", (user_id, recurring_id), "get_recurring")

    def list_recurring(self, user_id):
        return self._query("recurring", user_id, "list_recurring")

    def update_recurring(self, user_id, recurring_id, updates):
        return self._update("recurring", (user_id, recurring_id), updates, "update_recurring")

    def delete_recurring(self, user_id, recurring_id):
        return self._delete("recurring", (user_id, recurring_id), "delete_recurring")

    # Notifications
    def put_notification(self, item):
        return self._put("notifications", "user_id", "notification_id", item, "put_notification")

    def get_notification(self, user_id, notification_id):
        return self._get("notifications", (user_id, notification_id), "get_notification")

    def list_notifications(self, user_id, since: Optional[Any] = None):
        items = self._query("notifications", user_id, "list_notifications")
        if since is not None:
            items = [n for n in items if n["notification_id"] >= to_iso(since)]
        return items

    def update_notification(self, user_id, notification_id, updates):
        return self._update("notifications", (user_id, notification_id), updates, "update_notification")

    def delete_notification(self, user_id, notification_id):
        return self._delete("notifications", (user_id, notification_id), "delete_notification")

    # Preferences
    def get_preferences(self, user_id):
        return self._get("preferences", (user_id, ""), "get_preferences")

    def put_preferences(self, item):
        self._check("put_preferences")
        self.tables["preferences"][(item["user_id"], "")] = copy.deepcopy(item)
        return item

    def delete_preferences(self, user_id):
        return self._delete("preferences", (user_id, ""), "delete_preferences")


@pytest.fixture
def store():
    store = InMemoryStore()
    store.seed_default_categories()
    store.calls.clear()
    return store


@pytest.fixture
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    app.state.connections = ConnectionRegistry()
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def user(store):
    record = {
        "user_id": "user-1",
        "email": "alex@example.com",
        "name": "Alex",
        "password_hash": "not-used",
        "created_at": "2025-01-01T00:00:00.000",
    }
    store.put_user(record)
    return record


@pytest.fixture
def auth_headers(user):
    token = create_access_token({"sub": user["user_id"]})
    return {"Authorization": f"Bearer {token}"}
