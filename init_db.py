# init_db.py
from database.db_session import engine, init_db

if __name__ == "__main__":
    init_db(engine)
    print("DB tables created")
