from sqlalchemy import create_engine, Column, String, Float, Date
from sqlalchemy.orm import sessionmaker, declarative_base

from config import DATABASE_URL

# Database Setup for the local development API (server.py)
engine = create_engine(DATABASE_URL, connect_args={"check_same_thread": False} if "sqlite" in DATABASE_URL else {})
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

# --- Models ---

class TransactionRecord(Base):
    __tablename__ = "transactions"

    # Ids are client-generated, so they are only unique per owner
    id = Column(String, primary_key=True)
    email = Column(String, primary_key=True, index=True)
    amount = Column(Float, nullable=False)
    category = Column(String, default="Other")
    date = Column(Date, nullable=False)

# --- Init DB ---
def init_db(bind=None):
    Base.metadata.create_all(bind=bind or engine)

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
