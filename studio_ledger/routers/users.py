from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List

from studio_ledger.database import get_db
from studio_ledger.models import User
from studio_ledger.crud.users import get_active_users
from studio_ledger.schemas.users import UserCreate, UserRead, UserUpdate
from studio_ledger.security import get_current_user, get_password_hash, require_admin

router = APIRouter()


# --- 1. LEER TODOS (activos) ---
@router.get("/", response_model=List[UserRead])
def read_users(
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return get_active_users(db, skip=skip, limit=limit)


# --- 2. LEER USUARIO ACTUAL (ME) ---
@router.get("/me", response_model=UserRead)
def read_user_me(current_user: User = Depends(get_current_user)):
    return current_user


# --- 3. LEER POR ID ---
@router.get("/{user_id}", response_model=UserRead)
def read_user_by_id(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    user = db.query(User).filter(User.id == user_id).first()
    if not user or not user.is_active:
        raise HTTPException(status_code=404, detail="Usuario no encontrado")
    return user


# --- 4. CREAR USUARIO ---
@router.post("/", response_model=UserRead, status_code=201)
def create_user(
    user: UserCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    # Validar duplicados
    if db.query(User).filter(User.username == user.username).first():
        raise HTTPException(status_code=400, detail="El nombre de usuario ya existe")

    new_user = User(
        username=user.username,
        full_name=user.full_name,
        email=user.email,
        phone=user.phone,
        role=user.role,
        is_active=user.is_active,
        password_hash=get_password_hash(user.password),
    )
    db.add(new_user)
    db.commit()
    db.refresh(new_user)
    return new_user


# --- 5. ACTUALIZAR USUARIO ---
@router.put("/{user_id}", response_model=UserRead)
def update_user(
    user_id: int,
    user_in: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Si envías 'password', se guarda el nuevo hash."""
    user_db = db.query(User).filter(User.id == user_id).first()
    if not user_db:
        raise HTTPException(status_code=404, detail="Usuario no encontrado")

    update_data = user_in.model_dump(exclude_unset=True)

    # Manejo especial del Password
    password_raw = update_data.pop("password", None)
    if password_raw:
        user_db.password_hash = get_password_hash(password_raw)

    for field, value in update_data.items():
        if value is not None:
            setattr(user_db, field, value)

    db.commit()
    db.refresh(user_db)
    return user_db


# --- 6. DESACTIVAR (SOFT DELETE) ---
@router.delete("/{user_id}", response_model=UserRead)
def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    user_db = db.query(User).filter(User.id == user_id).first()
    if not user_db:
        raise HTTPException(status_code=404, detail="Usuario no encontrado")

    if not user_db.is_active:
        raise HTTPException(status_code=400, detail="Este usuario ya estaba desactivado")

    if user_db.id == current_user.id:
        raise HTTPException(status_code=400, detail="No puedes desactivar tu propio usuario")

    user_db.is_active = False
    db.commit()
    db.refresh(user_db)
    return user_db
