import argparse
from datetime import date, timedelta

from database import init_db, SessionLocal, TransactionRecord
from models import signed_amount

# (days ago, category, magnitude)
DEMO_ROWS = [
    (1, "Food", 42.80),
    (3, "Salary", 3200.00),
    (4, "Rent", 1450.00),
    (6, "Utilities", 96.15),
    (9, "Entertainment", 38.00),
    (12, "Travel", 220.40),
    (15, "Shopping", 74.99),
    (18, "Health", 25.00),
    (21, "Food", 61.35),
    (33, "Salary", 3200.00),
    (34, "Rent", 1450.00),
    (40, "Other", 18.50),
]


def seed_transactions(email: str):
    init_db()
    db = SessionLocal()

    # Check if the user already has data
    if db.query(TransactionRecord).filter(TransactionRecord.email == email).first():
        print(f"Transactions for {email} already exist. Skipping seed.")
        db.close()
        return

    today = date.today()
    for idx, (days_ago, category, magnitude) in enumerate(DEMO_ROWS, start=1):
        db.add(TransactionRecord(
            id=f"seed-{idx}",
            email=email,
            amount=signed_amount(magnitude, category),
            category=category,
            date=today - timedelta(days=days_ago),
        ))

    db.commit()
    print(f"Seeded {len(DEMO_ROWS)} demo transactions for {email}.")
    db.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed the local dev API with demo transactions.")
    parser.add_argument("email", help="Email the demo transactions belong to")
    args = parser.parse_args()
    seed_transactions(args.email)
