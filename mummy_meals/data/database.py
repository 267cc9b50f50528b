# mummy_meals/data/database.py
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from mummy_meals.utils.settings import DATABASE_URL

connect_args = {}
if DATABASE_URL.startswith("sqlite"):
    #sqlite + wiele watkow (uvicorn threadpool)
    connect_args = {"check_same_thread": False}

engine = create_engine(DATABASE_URL, pool_pre_ping=True, connect_args=connect_args)

SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
