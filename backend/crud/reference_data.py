from sqlalchemy.orm import Session
from models.reference_data import Department, HsnSacCode
from schemas.reference_data import DepartmentCreate, HsnSacCodeCreate
from exceptions import DuplicateCodeError, DepartmentNotFoundError, HsnSacCodeNotFoundError


def get_department(db: Session, department_id: int) -> Department:
    department = db.query(Department).filter(Department.id == department_id).first()
    if not department:
        raise DepartmentNotFoundError(department_id)
    return department


def get_departments(db: Session):
    return db.query(Department).order_by(Department.name).all()


def create_department(db: Session, department: DepartmentCreate, actor: str) -> Department:
    if db.query(Department).filter(Department.name == department.name).first():
        raise DuplicateCodeError(f"Department {department.name} already exists")
    db_department = Department(name=department.name, created_by=actor)
    db.add(db_department)
    db.commit()
    db.refresh(db_department)
    return db_department


def get_hsn_sac_code_by_code(db: Session, code: str) -> HsnSacCode:
    hsn_sac_code = db.query(HsnSacCode).filter(HsnSacCode.code == code).first()
    if not hsn_sac_code:
        raise HsnSacCodeNotFoundError(code)
    return hsn_sac_code


def get_hsn_sac_codes(db: Session):
    return db.query(HsnSacCode).order_by(HsnSacCode.code).all()


def create_hsn_sac_code(db: Session, hsn_sac_code: HsnSacCodeCreate, actor: str) -> HsnSacCode:
    if db.query(HsnSacCode).filter(HsnSacCode.code == hsn_sac_code.code).first():
        raise DuplicateCodeError(f"HSN/SAC code {hsn_sac_code.code} already exists")
    db_code = HsnSacCode(code=hsn_sac_code.code, description=hsn_sac_code.description, created_by=actor)
    db.add(db_code)
    db.commit()
    db.refresh(db_code)
    return db_code
