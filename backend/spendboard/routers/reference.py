"""Organisation reference data endpoints (sectors, branches, suppliers)."""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..database import get_db


router = APIRouter(
    tags=["Reference data"],
    responses={
        404: {"model": schemas.ErrorResponse, "description": "Not Found"},
    },
)


# ============================================================================
# SECTORS
# ============================================================================

@router.get("/sectors", response_model=List[schemas.SectorOut], summary="List sectors")
def list_sectors(db: Session = Depends(get_db)):
    return db.query(models.Sector).order_by(models.Sector.name).all()


@router.post(
    "/sectors",
    response_model=schemas.SectorOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create sector",
)
def create_sector(payload: schemas.SectorCreate, db: Session = Depends(get_db)):
    sector = models.Sector(name=payload.name.strip())
    db.add(sector)
    db.commit()
    db.refresh(sector)
    return sector


@router.delete("/sectors/{sector_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete sector")
def delete_sector(sector_id: str, db: Session = Depends(get_db)):
    sector = db.get(models.Sector, sector_id)
    if not sector:
        raise HTTPException(status_code=404, detail="Sector not found")
    db.delete(sector)
    db.commit()
    return None


# ============================================================================
# BRANCHES
# ============================================================================

def _branch_to_schema(branch: models.Branch) -> schemas.BranchOut:
    return schemas.BranchOut(
        id=branch.id,
        name=branch.name,
        sector_ids=[sector.id for sector in branch.sectors],
    )


@router.get("/branches", response_model=List[schemas.BranchOut], summary="List branches")
def list_branches(db: Session = Depends(get_db)):
    branches = db.query(models.Branch).order_by(models.Branch.name).all()
    return [_branch_to_schema(b) for b in branches]


@router.post(
    "/branches",
    response_model=schemas.BranchOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create branch",
)
def create_branch(payload: schemas.BranchCreate, db: Session = Depends(get_db)):
    sectors = []
    if payload.sector_ids:
        sectors = db.query(models.Sector).filter(models.Sector.id.in_(payload.sector_ids)).all()
        missing = set(payload.sector_ids) - {s.id for s in sectors}
        if missing:
            raise HTTPException(status_code=404, detail=f"Unknown sectors: {', '.join(sorted(missing))}")

    branch = models.Branch(name=payload.name.strip(), sectors=sectors)
    db.add(branch)
    db.commit()
    db.refresh(branch)
    return _branch_to_schema(branch)


@router.delete("/branches/{branch_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete branch")
def delete_branch(branch_id: str, db: Session = Depends(get_db)):
    branch = db.get(models.Branch, branch_id)
    if not branch:
        raise HTTPException(status_code=404, detail="Branch not found")
    db.delete(branch)
    db.commit()
    return None


# ============================================================================
# SUPPLIERS
# ============================================================================

@router.get("/suppliers", response_model=List[schemas.SupplierOut], summary="List suppliers")
def list_suppliers(db: Session = Depends(get_db)):
    return db.query(models.Supplier).order_by(models.Supplier.name).all()


@router.post(
    "/suppliers",
    response_model=schemas.SupplierOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create supplier",
)
def create_supplier(payload: schemas.SupplierCreate, db: Session = Depends(get_db)):
    supplier = models.Supplier(name=payload.name.strip())
    db.add(supplier)
    db.commit()
    db.refresh(supplier)
    return supplier


@router.delete("/suppliers/{supplier_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete supplier")
def delete_supplier(supplier_id: str, db: Session = Depends(get_db)):
    supplier = db.get(models.Supplier, supplier_id)
    if not supplier:
        raise HTTPException(status_code=404, detail="Supplier not found")
    db.delete(supplier)
    db.commit()
    return None
