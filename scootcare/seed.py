from datetime import date, datetime, timezone, timedelta

def _days_ago(days: int) -> str:
    return (datetime.now(timezone.utc) - timedelta(days=days)).isoformat()

def _days_ahead(days: int) -> str:
    return (date.today() + timedelta(days=days)).isoformat()

USERS = [
    {"id": "user-alex", "phone": "+15550100001", "role": "customer", "token": "dev-alex"},
    {"id": "user-sam", "phone": "+15550100002", "role": "customer", "token": "dev-sam"},
    {"id": "user-admin", "phone": "+15550100099", "role": "admin", "token": "dev-admin"},
]

ORDERS = [
    {"id": "SCT-2024-001", "owner_id": "user-alex", "model_name": "ScootMax Pro", "status": "delivered",
     "expected_delivery_date": _days_ahead(-20), "created_at": _days_ago(30)},
    {"id": "SCT-2024-002", "owner_id": "user-alex", "model_name": "ScootLite Urban", "status": "shipped",
     "expected_delivery_date": _days_ahead(3), "created_at": _days_ago(4)},
    {"id": "SCT-2024-003", "owner_id": "user-sam", "model_name": "ScootMax Elite", "status": "processing",
     "expected_delivery_date": None, "created_at": _days_ago(1)},
]

KNOWLEDGE = [
    {"question": "Battery not charging", "type": "static",
     "resolution": ("Battery issues can often be resolved by checking the charging port for debris and ensuring "
                    "you're using the original charger. If the battery won't hold a charge, it may need replacement."),
     "metadata": {}},
    {"question": "Scooter running slow", "type": "static",
     "resolution": ("Speed issues can be caused by low battery, tire pressure, or software settings. Check your "
                    "riding mode settings and make sure your tires are properly inflated."),
     "metadata": {}},
    {"question": "Brakes not working properly", "type": "static",
     "resolution": ("Brake issues require immediate attention for safety. Stop using the scooter and check whether "
                    "the brake pads are worn or there is debris in the brake mechanism."),
     "metadata": {}},
    {"question": "Where is my order delivery status", "type": "dynamic",
     "resolution": "Looks up the customer's most recent order.",
     "metadata": {"function": "order_tracking"}},
]

def seed_backend(backend):
    """Load demo users, dev tokens, orders and knowledge entries into an in-memory backend."""
    for i, user in enumerate(USERS):
        backend.insert("users", {k: v for k, v in user.items() if k != "token"} | {"created_at": _days_ago(60 - i)})
        backend.issue_token(user["id"], user["token"])
    for order in ORDERS:
        backend.insert("orders", dict(order))
    for i, entry in enumerate(KNOWLEDGE):
        backend.insert("knowledge_entries", dict(entry, created_at=_days_ago(90 - i)))
    return backend
