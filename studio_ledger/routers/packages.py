from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from studio_ledger.database import get_db
from studio_ledger.crud import packages as crud_packages
from studio_ledger.schemas.packages import PackageCreate, PackageRead, PackageUpdate
from studio_ledger.models import User
from studio_ledger.security import get_current_user, require_admin

router = APIRouter()


@router.get("/", response_model=List[PackageRead])
def read_packages(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return crud_packages.get_packages(db)


@router.get("/{package_id}", response_model=PackageRead)
def read_package(
    package_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return crud_packages.get_package(db, package_id)


@router.post("/", response_model=PackageRead, status_code=201)
def create_package(
    package_in: PackageCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    return crud_packages.create_package(db, package_in)


@router.put("/{package_id}", response_model=PackageRead)
def update_package(
    package_id: int,
    package_in: PackageUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    return crud_packages.update_package(db, package_id, package_in)


@router.delete("/{package_id}", response_model=PackageRead)
def delete_package(
    package_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Baja lógica; las sesiones existentes conservan la referencia."""
    return crud_packages.deactivate_package(db, package_id)
