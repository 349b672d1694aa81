from sqlalchemy.orm import Session
from studio_ledger.models import User


def get_user_by_username(db: Session, username: str):
    """Busca un usuario activo por su username."""
    return db.query(User).filter(User.username == username, User.is_active == True).first()


def get_active_users(db: Session, skip: int = 0, limit: int = 100):
    return (
        db.query(User)
        .filter(User.is_active == True)
        .order_by(User.full_name.asc())
        .offset(skip)
        .limit(limit)
        .all()
    )
