def _iso(value):
    return value.isoformat() if value else None


def booking_json(b) -> dict:
    return {
        "id": b.id,
        "customer_id": b.customer_id,
        "cameraman_id": b.cameraman_id,
        "service_id": b.service_id,
        "scheduled_date": _iso(b.scheduled_date),
        "time_of_day": b.time_of_day,
        "amount": b.amount,
        "status": b.status,
        "created_at": _iso(b.created_at),
        "updated_at": _iso(b.updated_at),
    }


def payment_json(p) -> dict:
    return {
        "id": p.id,
        "booking_id": p.booking_id,
        "type": p.type,
        "amount": p.amount,
        "status": p.status,
        "created_at": _iso(p.created_at),
        "paid_at": _iso(p.paid_at),
    }


def notification_json(n) -> dict:
    return {
        "id": n.id,
        "type": n.type,
        "content": n.content,
        "is_read": n.is_read,
        "created_at": _iso(n.created_at),
    }


def user_json(u) -> dict:
    return {
        "id": u.id,
        "email": u.email,
        "full_name": u.full_name,
        "roles": sorted(u.role_names),
        "membership_subscription": u.membership_subscription,
        "subscription_start_date": _iso(u.subscription_start_date),
        "subscription_end_date": _iso(u.subscription_end_date),
    }
