import logging
import os
import sys
from contextlib import asynccontextmanager
from datetime import datetime
from typing import List, Optional

from fastapi import Depends, FastAPI, File, Form, Query, Request, UploadFile
from fastapi.exceptions import HTTPException, RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pymongo.database import Database
from starlette.exceptions import HTTPException as StarletteHTTPException

import auth_service
import book_service
import category_service
import database
from config import DATABASE_URL, LOG_LEVEL, PORT, UPLOAD_DIR, UPLOAD_URL_PREFIX
from database import ensure_indexes, get_db
from errors import LibraryError
from schemas import (
    AdminStatus,
    Book,
    BookSummary,
    Category,
    CategoryCreate,
    CategoryUpdate,
    Credentials,
    LoginResponse,
    MessageResponse,
    SetupResponse,
    TranslationUpdate,
)
from uploads import UploadedFile, UploadStore, get_upload_store

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if database.db is not None:
        try:
            ensure_indexes(database.db)
        except Exception as e:
            logger.error(f"Could not create indexes: {e}")
    yield


app = FastAPI(title="Scripture Library API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

os.makedirs(UPLOAD_DIR, exist_ok=True)
app.mount(UPLOAD_URL_PREFIX, StaticFiles(directory=UPLOAD_DIR), name="uploads")


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = datetime.now()
    try:
        response = await call_next(request)
    except Exception as e:
        duration = (datetime.now() - start_time).total_seconds()
        logger.error(
            f"Request failed: {request.method} {request.url.path} - Duration: {duration:.3f}s - Error: {e}",
            exc_info=True,
        )
        return JSONResponse(status_code=500, content={"error": str(e)})
    duration = (datetime.now() - start_time).total_seconds()
    logger.info(
        f"{request.method} {request.url.path} - Status: {response.status_code} - Duration: {duration:.3f}s"
    )
    return response


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse({"error": exc.detail}, status_code=exc.status_code, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    problems = "; ".join(
        f"{err['loc'][-1]}: {err['msg']}" if err.get("loc") else err["msg"] for err in exc.errors()
    )
    return JSONResponse({"error": problems or "Invalid request"}, status_code=400)


# Utilities

def _http_error(e: Exception) -> HTTPException:
    if isinstance(e, LibraryError):
        return HTTPException(status_code=e.status_code, detail=e.message)
    logger.exception("Unexpected error while handling request")
    return HTTPException(status_code=500, detail=str(e))


def _uploaded(upload: Optional[UploadFile]) -> Optional[UploadedFile]:
    if upload is None or not upload.filename:
        return None
    return UploadedFile(data=upload.file.read(), filename=upload.filename)


@app.get("/")
def read_root():
    return {"message": "Scripture library backend running", "status": "running"}


@app.get("/api/health")
def health_check():
    return {"status": "ok", "message": "Backend is running"}


@app.get("/api/health/database")
def database_health():
    response = {
        "database": "Not Available",
        "database_url": "Set" if DATABASE_URL else "Not Set",
        "database_name": None,
        "connection_status": "Not Connected",
        "collections": [],
    }
    db = database.db
    if db is None:
        return response

    response["database_name"] = db.name
    try:
        response["collections"] = db.list_collection_names()[:10]
        response["connection_status"] = "Connected"
        response["database"] = "Connected & Working"
    except Exception as e:
        logger.warning(f"Database health check failed: {e}")
        response["database"] = f"Connected but Error: {str(e)[:50]}"
    return response


# Books

@app.get("/api/books", response_model=List[BookSummary])
def list_books(
    category: Optional[str] = None,
    search: Optional[str] = None,
    lang: Optional[str] = Query(None, description="Only search translations in this language"),
    db: Database = Depends(get_db),
):
    try:
        return book_service.list_books(db, category=category, search=search, lang=lang)
    except Exception as e:
        raise _http_error(e)


@app.get("/api/books/{book_id}", response_model=Book)
def get_book(book_id: str, db: Database = Depends(get_db)):
    try:
        return book_service.get_book(db, book_id)
    except Exception as e:
        raise _http_error(e)


@app.post("/api/books", response_model=Book, status_code=201)
def create_book(
    title: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    original_language: Optional[str] = Form(None, alias="originalLanguage"),
    author: Optional[str] = Form(None),
    year: Optional[str] = Form(None),
    verses: Optional[str] = Form(None),
    chapters: Optional[str] = Form(None),
    enabled_fields: Optional[str] = Form(None, alias="enabledFields"),
    custom_fields: Optional[str] = Form(None, alias="customFields"),
    cover_image: Optional[UploadFile] = File(None, alias="coverImage"),
    db: Database = Depends(get_db),
    uploads: UploadStore = Depends(get_upload_store),
):
    try:
        fields = book_service.build_book_fields(
            title, category, description, original_language, author, year,
            verses, chapters, enabled_fields, custom_fields,
        )
        return book_service.create_book(db, uploads, fields, _uploaded(cover_image))
    except Exception as e:
        raise _http_error(e)


@app.put("/api/books/{book_id}", response_model=Book)
def update_book(
    book_id: str,
    title: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    original_language: Optional[str] = Form(None, alias="originalLanguage"),
    author: Optional[str] = Form(None),
    year: Optional[str] = Form(None),
    verses: Optional[str] = Form(None),
    chapters: Optional[str] = Form(None),
    enabled_fields: Optional[str] = Form(None, alias="enabledFields"),
    custom_fields: Optional[str] = Form(None, alias="customFields"),
    cover_image: Optional[UploadFile] = File(None, alias="coverImage"),
    db: Database = Depends(get_db),
    uploads: UploadStore = Depends(get_upload_store),
):
    try:
        fields = book_service.build_book_fields(
            title, category, description, original_language, author, year,
            verses, chapters, enabled_fields, custom_fields,
        )
        return book_service.update_book(db, uploads, book_id, fields, _uploaded(cover_image))
    except Exception as e:
        raise _http_error(e)


@app.delete("/api/books/{book_id}", response_model=MessageResponse)
def delete_book(book_id: str, db: Database = Depends(get_db)):
    try:
        book_service.delete_book(db, book_id)
        return MessageResponse(message="Book deleted")
    except Exception as e:
        raise _http_error(e)


# Translations

@app.post("/api/books/{book_id}/translations", response_model=Book, status_code=201)
def add_translation(
    book_id: str,
    translator_name: Optional[str] = Form(None, alias="translatorName"),
    language: Optional[str] = Form(None),
    content: Optional[str] = Form(None),
    file: Optional[UploadFile] = File(None),
    db: Database = Depends(get_db),
    uploads: UploadStore = Depends(get_upload_store),
):
    try:
        return book_service.add_translation(
            db, uploads, book_id, translator_name, language, content, _uploaded(file)
        )
    except Exception as e:
        raise _http_error(e)


@app.put("/api/books/{book_id}/translations/{translation_id}", response_model=Book)
def update_translation(
    book_id: str,
    translation_id: str,
    payload: TranslationUpdate,
    db: Database = Depends(get_db),
):
    try:
        return book_service.update_translation(db, book_id, translation_id, payload)
    except Exception as e:
        raise _http_error(e)


@app.delete("/api/books/{book_id}/translations/{translation_id}", response_model=MessageResponse)
def delete_translation(book_id: str, translation_id: str, db: Database = Depends(get_db)):
    try:
        book_service.delete_translation(db, book_id, translation_id)
        return MessageResponse(message="Translation deleted")
    except Exception as e:
        raise _http_error(e)


# Categories

@app.get("/api/categories", response_model=List[Category])
def list_categories(db: Database = Depends(get_db)):
    try:
        return category_service.list_categories(db)
    except Exception as e:
        raise _http_error(e)


@app.post("/api/categories", response_model=Category, status_code=201)
def create_category(payload: CategoryCreate, db: Database = Depends(get_db)):
    try:
        return category_service.create_category(db, payload)
    except Exception as e:
        raise _http_error(e)


@app.put("/api/categories/{category_id}", response_model=Category)
def update_category(category_id: str, payload: CategoryUpdate, db: Database = Depends(get_db)):
    try:
        return category_service.update_category(db, category_id, payload)
    except Exception as e:
        raise _http_error(e)


@app.delete("/api/categories/{category_id}", response_model=MessageResponse)
def delete_category(category_id: str, db: Database = Depends(get_db)):
    try:
        category_service.delete_category(db, category_id)
        return MessageResponse(message="Category deleted")
    except Exception as e:
        raise _http_error(e)


# Admin authentication

@app.get("/api/auth/check", response_model=AdminStatus)
def check_admin(db: Database = Depends(get_db)):
    try:
        return AdminStatus(admin_exists=auth_service.check_admin_exists(db))
    except Exception as e:
        raise _http_error(e)


@app.post("/api/auth/setup", response_model=SetupResponse)
def setup_admin(payload: Credentials, db: Database = Depends(get_db)):
    try:
        auth_service.setup_admin(db, payload.username, payload.password)
        return SetupResponse()
    except Exception as e:
        raise _http_error(e)


@app.post("/api/auth/login", response_model=LoginResponse)
def login(payload: Credentials, db: Database = Depends(get_db)):
    try:
        token, username = auth_service.login(db, payload.username, payload.password)
        return LoginResponse(token=token, username=username)
    except Exception as e:
        raise _http_error(e)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=PORT)
