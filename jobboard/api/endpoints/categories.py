"""
Category endpoints.

Create and update accept either JSON (image fields given as existing paths)
or multipart forms with the files:

- image:      1 file, 500x500, JPEG quality 85
- imageCover: 1 file, 2000x1333, JPEG quality 90
- images:     up to 3 files, 1000x666, JPEG quality 85
"""

import logging
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from jobboard import crud
from jobboard.core.database import get_db
from jobboard.core.deps import require_dev, require_staff
from jobboard.models.category import GALLERY_SIZE
from jobboard.models.user import User
from jobboard.services.images import ImageField, ImageHandler

router = APIRouter(prefix="/categories", tags=["Categories"])
logger = logging.getLogger(__name__)

CATEGORY_IMAGE_FIELDS = (
    ImageField("image", max_count=1, width=500, height=500, quality=85),
    ImageField("image_cover", max_count=1, width=2000, height=1333, quality=90),
    ImageField("images", max_count=GALLERY_SIZE, width=1000, height=666, quality=85),
)

category_images = ImageHandler(crud.categories, "categories", CATEGORY_IMAGE_FIELDS)


@router.get("/")
def list_categories(request: Request, db: Session = Depends(get_db)):
    return crud.categories.get_all(db, request.query_params)


@router.get("/all")
def list_all_categories(db: Session = Depends(get_db)):
    data = crud.categories.get_all_no_pagination(db)
    return {"status": "success", "results": len(data), "data": data}


@router.delete("/delete-all", dependencies=[Depends(require_dev)])
def delete_all_categories(db: Session = Depends(get_db)):
    return category_images.delete_all(db)


@router.get("/{id}")
def get_category(id: int, db: Session = Depends(get_db)):
    return crud.categories.get_one(db, id)


@router.post("/", status_code=201)
async def create_category(
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_staff),
):
    """
    Create a category.

    All uploaded parts are validated before any image is resized or stored;
    files are only kept if the record is committed.
    """
    return await category_images.create_one(request, db, user)


@router.patch("/{id}", dependencies=[Depends(require_staff)])
async def update_category(id: int, request: Request, db: Session = Depends(get_db)):
    """
    Update a category.

    Previous files are removed after commit, and only for the image fields
    the request replaced.
    """
    return await category_images.update_one(request, db, id)


@router.delete("/{id}", dependencies=[Depends(require_staff)])
def delete_category(id: int, db: Session = Depends(get_db)):
    return category_images.delete_one(db, id)
