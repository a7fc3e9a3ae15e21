from typing import Iterator

from sqlalchemy.orm import Session

from stockledger.db import session as db_session


def get_db() -> Iterator[Session]:
    # se resuelve en cada peticion para que los tests puedan sustituir SessionLocal
    db = db_session.SessionLocal()
    try:
        yield db
    finally:
        db.close()
