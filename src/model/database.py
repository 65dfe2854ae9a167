from sqlmodel import Session, SQLModel, create_engine

from core.config import settings

# SQLite는 스레드 간 커넥션 공유를 막으므로 check_same_thread 해제
_connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(settings.DATABASE_URL, connect_args=_connect_args)


def create_db_and_tables():
    SQLModel.metadata.create_all(engine)


def get_session():
    with Session(engine) as session:
        yield session
