from sqlalchemy.orm import Session
from studio_ledger.errors import NotFound
from studio_ledger.models import Package
from studio_ledger.schemas.packages import PackageCreate, PackageUpdate
from studio_ledger.utils.money import require_amount, require_percentages


def get_package(db: Session, package_id: int):
    """Paquete activo por id; NotFound si no existe o está dado de baja."""
    package = db.query(Package).filter(Package.id == package_id).first()
    if not package or not package.is_active:
        raise NotFound("Paquete no encontrado")
    return package


def get_packages(db: Session):
    return db.query(Package).filter(Package.is_active == True).order_by(Package.name.asc()).all()


def create_package(db: Session, package_in: PackageCreate):
    percentages = require_percentages(package_in.percentage_a, package_in.percentage_b, package_in.percentage_c)
    db_package = Package(
        name=package_in.name,
        description=package_in.description,
        price=require_amount(package_in.price, "precio"),
        percentage_a=percentages[0],
        percentage_b=percentages[1],
        percentage_c=percentages[2],
        is_active=True,
    )
    db.add(db_package)
    db.commit()
    db.refresh(db_package)
    return db_package


def update_package(db: Session, package_id: int, package_in: PackageUpdate):
    """
    Los porcentajes se validan combinados con los vigentes: enviar solo uno
    obliga a que los tres sigan sumando 100.
    No afecta repartos ya calculados de sesiones existentes.
    """
    package = get_package(db, package_id)
    update_data = package_in.model_dump(exclude_unset=True)

    fields = ("percentage_a", "percentage_b", "percentage_c")
    merged = [
        update_data[field] if update_data.get(field) is not None else getattr(package, field)
        for field in fields
    ]
    # Se guardan los valores ya redondeados con los que se validó la suma
    for field, value in zip(fields, require_percentages(*merged)):
        update_data[field] = value

    if update_data.get("price") is not None:
        update_data["price"] = require_amount(update_data["price"], "precio")

    for field, value in update_data.items():
        if value is not None:
            setattr(package, field, value)

    db.commit()
    db.refresh(package)
    return package


def deactivate_package(db: Session, package_id: int):
    # Soft delete: las sesiones siguen referenciando el paquete
    package = get_package(db, package_id)
    package.is_active = False
    db.commit()
    db.refresh(package)
    return package
