# collision_os/routers/vendors.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from collision_os.database import get_db
from collision_os.schemas.vendor import VendorCreate, VendorOut
from collision_os.services import parts_service

router = APIRouter()


@router.post("/vendors", response_model=VendorOut, status_code=201, summary="Register a parts vendor")
def create_vendor(body: VendorCreate, db: Session = Depends(get_db)):
    return parts_service.create_vendor(db, body.model_dump())


@router.get("/vendors", response_model=list[VendorOut], summary="List parts vendors")
def list_vendors(db: Session = Depends(get_db)):
    return parts_service.list_vendors(db)
