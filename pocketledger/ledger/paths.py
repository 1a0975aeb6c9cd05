"""
Document paths for a user's namespace.

Every ledger document lives under users/{uid}:
    users/{uid}                                   profile
    users/{uid}/billSessions/{sessionId}          bill session
    users/{uid}/billSessions/{sessionId}/items/*  bill items
    users/{uid}/transactions/{txId}
    users/{uid}/budgets/{monthKey}_{categoryId}
    users/{uid}/goals/{goalId}
"""


def _require_id(value: str, name: str) -> str:
    if not value or "/" in value:
        raise ValueError(f"invalid {name}: {value!r}")
    return value


def profile_path(uid: str) -> str:
    return f"users/{_require_id(uid, 'uid')}"


def bill_sessions_path(uid: str) -> str:
    return f"{profile_path(uid)}/billSessions"


def bill_session_path(uid: str, session_id: str) -> str:
    return f"{bill_sessions_path(uid)}/{_require_id(session_id, 'session id')}"


def bill_items_path(uid: str, session_id: str) -> str:
    return f"{bill_session_path(uid, session_id)}/items"


def bill_item_path(uid: str, session_id: str, item_id: str) -> str:
    return f"{bill_items_path(uid, session_id)}/{_require_id(item_id, 'item id')}"


def transactions_path(uid: str) -> str:
    return f"{profile_path(uid)}/transactions"


def transaction_path(uid: str, tx_id: str) -> str:
    return f"{transactions_path(uid)}/{_require_id(tx_id, 'transaction id')}"


def budgets_path(uid: str) -> str:
    return f"{profile_path(uid)}/budgets"


def budget_path(uid: str, budget_id: str) -> str:
    return f"{budgets_path(uid)}/{_require_id(budget_id, 'budget id')}"


def goals_path(uid: str) -> str:
    return f"{profile_path(uid)}/goals"


def goal_path(uid: str, goal_id: str) -> str:
    return f"{goals_path(uid)}/{_require_id(goal_id, 'goal id')}"
