from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session
import logging

from studio_ledger.database import get_db
from studio_ledger.security import verify_password, create_access_token
from studio_ledger.schemas.users import Token
from studio_ledger.crud.users import get_user_by_username

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/login", response_model=Token)
def login_for_access_token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db)
):
    # 1. Buscar usuario activo
    user = get_user_by_username(db, username=form_data.username)

    # 2. Verificar contraseña (mismo mensaje para no revelar qué falló)
    if not user or not verify_password(form_data.password, user.password_hash):
        logger.warning("Intento de acceso fallido para %s", form_data.username)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Usuario o contraseña incorrectos",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # 3. Generar Token
    access_token = create_access_token(data={"sub": user.username, "role": user.role.value})
    return {"access_token": access_token, "token_type": "bearer"}
