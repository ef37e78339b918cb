from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
import os

# URL de la base de données (SQLite par défaut, surchargeable via .env)
SQLALCHEMY_DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./budget_tracker.db")

connect_args = {"check_same_thread": False} if SQLALCHEMY_DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

def init_db(bind=None):
    """Initialise la base de données (création des tables)"""
    from database import models  # noqa: F401  enregistre les tables sur Base
    Base.metadata.create_all(bind=bind or engine)

def get_db():
    """Dependency pour obtenir une session de base de données"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
