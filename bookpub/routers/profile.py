from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from sqlalchemy.orm import Session
from .. import models, schemas
from ..database import get_db
from ..auth import require_user
from ..errors import UploadError
from ..sessions import WebSession
from ..templating import render
from ..uploads import UploadKind, has_file, save_upload
from ..utils.logging import get_logger

router = APIRouter()
logger = get_logger("bookpub.routers.profile")

@router.get("/userprofile", response_class=HTMLResponse)
async def user_profile(
    request: Request,
    db: Session = Depends(get_db),
    web: WebSession = Depends(require_user)
):
    """The current user's profile and the books they published."""
    user_books = (
        db.query(models.Book)
        .filter(models.Book.owner_id == web.user.id)
        .order_by(models.Book.created_at.desc(), models.Book.id.desc())
        .all()
    )
    return render(request, web, "userprofile.html", {
        "title": "User Profile",
        "books": [schemas.BookOut.from_book(b) for b in user_books],
    })

@router.post("/updateprofile")
async def update_profile(
    request: Request,
    db: Session = Depends(get_db),
    web: WebSession = Depends(require_user)
):
    form = await request.form()
    data = schemas.ProfileForm(
        bio=form.get("bio"),
        profile_picture=form.get("profile_picture"),
    )

    user = web.user
    if data.bio:
        user.bio = data.bio
    if data.profile_picture:
        user.profile_picture = data.profile_picture
    db.commit()
    logger.info("User id=%s updated profile", user.id)

    web.flash("success", "Profile updated successfully!")
    return web.apply(RedirectResponse(url="/userprofile", status_code=303))

@router.post("/upload-profile-pic")
async def upload_profile_picture(
    request: Request,
    db: Session = Depends(get_db),
    web: WebSession = Depends(require_user)
):
    form = await request.form()
    upload = form.get("profile_picture_file")
    if not has_file(upload):
        raise web.fail("/userprofile", "Please select an image file to upload")

    try:
        picture_path = await save_upload(upload, UploadKind.PROFILE)
    except UploadError as exc:
        raise web.fail("/userprofile", str(exc))

    web.user.profile_picture = picture_path
    db.commit()
    logger.info("User id=%s uploaded profile picture %s", web.user.id, picture_path)

    web.flash("success", "Profile picture uploaded successfully!")
    return web.apply(RedirectResponse(url="/userprofile", status_code=303))
