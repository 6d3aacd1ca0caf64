from datetime import date

REF = date(2026, 10, 19)


def tx(when, category, description, amount, **extra):
    record = {
        "date": when if isinstance(when, str) else when.isoformat(),
        "category": category,
        "description": description,
        "amount": amount,
    }
    record.update(extra)
    return record
