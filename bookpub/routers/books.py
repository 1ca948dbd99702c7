import os
from typing import Optional
from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, FileResponse, RedirectResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session, joinedload
from .. import models, schemas
from ..database import get_db
from ..auth import require_user, ensure_owner
from ..config import settings
from ..errors import UploadError
from ..sessions import WebSession
from ..templating import render
from ..uploads import UploadKind, has_file, save_upload, remove_upload, resolve_public_path
from ..utils.logging import get_logger

router = APIRouter()
logger = get_logger("bookpub.routers.books")

BOOK_NOT_FOUND = "Book not found"

def get_book_or_redirect(db: Session, web: WebSession, book_id: str, redirect_to: str) -> models.Book:
    """
    Loads a book by its id, redirecting with a flash when it does not exist.
    Non-numeric ids are treated the same as unknown ones.
    """
    try:
        pk = int(book_id)
    except (TypeError, ValueError):
        pk = None
    book = db.get(models.Book, pk) if pk is not None else None
    if book is None:
        raise web.fail(redirect_to, BOOK_NOT_FOUND)
    return book

def parse_book_form(web: WebSession, form, redirect_to: str) -> schemas.BookForm:
    try:
        return schemas.BookForm(
            title=form.get("title") or "",
            publisher=form.get("publisher") or "",
            description=form.get("description") or "",
            category=form.get("category") or "",
        )
    except ValidationError as exc:
        raise web.fail(redirect_to, schemas.first_error(exc))

@router.get("/homepage", response_class=HTMLResponse)
async def homepage(
    request: Request,
    category: Optional[str] = None,
    db: Session = Depends(get_db),
    web: WebSession = Depends(require_user)
):
    """Lists every published book together with its owner's username."""
    query = db.query(models.Book).options(joinedload(models.Book.owner))

    selected = None
    if category in models.Category.values():
        selected = models.Category(category)
        query = query.filter(models.Book.category == selected)

    books = query.order_by(models.Book.created_at.desc(), models.Book.id.desc()).all()
    return render(request, web, "homepage.html", {
        "title": "Homepage",
        "books": [schemas.BookOut.from_book(b) for b in books],
        "selected_category": selected.value if selected else None,
    })

@router.get("/createbook", response_class=HTMLResponse)
async def create_book_page(request: Request, web: WebSession = Depends(require_user)):
    return render(request, web, "createbook.html", {"title": "Create Book"})

@router.post("/createbook")
async def create_book(
    request: Request,
    db: Session = Depends(get_db),
    web: WebSession = Depends(require_user)
):
    form = await request.form()
    data = parse_book_form(web, form, "/createbook")

    book_upload = form.get("book_file")
    if not has_file(book_upload):
        raise web.fail("/createbook", "Please upload a book file")

    cover_upload = form.get("cover_image")
    book_path = None
    try:
        book_path = await save_upload(book_upload, UploadKind.BOOK)
        if has_file(cover_upload):
            cover_path = await save_upload(cover_upload, UploadKind.COVER)
        else:
            cover_path = (form.get("cover_url") or "").strip() or settings.DEFAULT_COVER
    except UploadError as exc:
        if book_path:
            remove_upload(book_path)
        raise web.fail("/createbook", str(exc))

    new_book = models.Book(
        title=data.title,
        owner_id=web.user.id,
        publisher=data.publisher,
        description=data.description,
        category=data.category,
        cover_image=cover_path,
        book_file=book_path,
    )
    db.add(new_book)
    db.commit()
    logger.info("User id=%s published book id=%s", web.user.id, new_book.id)

    web.flash("success", "Book published successfully!")
    return web.apply(RedirectResponse(url="/userprofile", status_code=303))

@router.get("/editbook/{book_id}", response_class=HTMLResponse)
async def edit_book_page(
    request: Request,
    book_id: str,
    db: Session = Depends(get_db),
    web: WebSession = Depends(require_user)
):
    book = get_book_or_redirect(db, web, book_id, "/userprofile")
    ensure_owner(web, book)
    return render(request, web, "editbook.html", {
        "title": "Edit Book",
        "book": schemas.BookOut.from_book(book),
    })

@router.post("/editbook/{book_id}")
async def edit_book(
    request: Request,
    book_id: str,
    db: Session = Depends(get_db),
    web: WebSession = Depends(require_user)
):
    book = get_book_or_redirect(db, web, book_id, "/userprofile")
    ensure_owner(web, book)

    form = await request.form()
    data = parse_book_form(web, form, f"/editbook/{book.id}")

    book.title = data.title
    book.publisher = data.publisher
    book.description = data.description
    book.category = data.category
    db.commit()
    logger.info("User id=%s updated book id=%s", web.user.id, book.id)

    web.flash("success", "Book updated successfully!")
    return web.apply(RedirectResponse(url="/userprofile", status_code=303))

@router.get("/deletebook/{book_id}", response_class=HTMLResponse)
async def delete_book_page(
    request: Request,
    book_id: str,
    db: Session = Depends(get_db),
    web: WebSession = Depends(require_user)
):
    book = get_book_or_redirect(db, web, book_id, "/userprofile")
    ensure_owner(web, book)
    return render(request, web, "deletebook.html", {
        "title": "Delete Book",
        "book": schemas.BookOut.from_book(book),
    })

@router.post("/deletebook/{book_id}")
async def delete_book(
    book_id: str,
    db: Session = Depends(get_db),
    web: WebSession = Depends(require_user)
):
    book = get_book_or_redirect(db, web, book_id, "/userprofile")
    ensure_owner(web, book)

    stored_files = (book.book_file, book.cover_image)
    db.delete(book)
    db.commit()
    for public_path in stored_files:
        remove_upload(public_path)
    logger.info("User id=%s deleted book id=%s", web.user.id, book_id)

    web.flash("success", "Book deleted successfully!")
    return web.apply(RedirectResponse(url="/userprofile", status_code=303))

@router.get("/download/{book_id}")
async def download_book(
    book_id: str,
    db: Session = Depends(get_db),
    web: WebSession = Depends(require_user)
):
    book = get_book_or_redirect(db, web, book_id, "/homepage")

    try:
        file_path = resolve_public_path(book.book_file)
    except ValueError:
        file_path = None
    if not file_path or not os.path.isfile(file_path):
        logger.error("Book id=%s file missing on disk: %s", book.id, book.book_file)
        raise web.fail("/homepage", "Error downloading book")

    # Single UPDATE so concurrent downloads do not overwrite each other
    db.query(models.Book).filter(models.Book.id == book.id).update(
        {models.Book.downloads: models.Book.downloads + 1},
        synchronize_session=False,
    )
    db.commit()
    logger.info("User id=%s downloaded book id=%s", web.user.id, book.id)

    return FileResponse(file_path, filename=os.path.basename(file_path))
