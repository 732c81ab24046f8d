from sqlalchemy import text
from sqlalchemy.orm import Session


def insert_record(session: Session, name: str) -> None:
    session.execute(text("INSERT INTO record (name) VALUES (:name)"), dict(name=name))


def select_names(session: Session) -> list[str]:
    return [name for [name] in session.execute(text("SELECT name FROM record ORDER BY id"))]
