"""
HTTP routes: login/logout, user CRUD and per-user hobbies.

Every handler renders an HTML view. Persistence failures are caught here,
logged with their cause, and turned into a generic message for the user.
"""

from __future__ import annotations

from typing import Optional

from botocore.exceptions import BotoCoreError, ClientError
from fastapi import APIRouter, Depends, File, Form, Request, UploadFile, status
from fastapi.responses import JSONResponse, RedirectResponse

from hobbyboard.auth import (
    INVALID_LOGIN_MESSAGE,
    AuthClaim,
    authenticate,
    get_auth_claim,
    log_in,
    log_out,
)
from hobbyboard.db import RecordStore, UserRecord
from hobbyboard.dependencies import get_image_storage, get_record_store, templates
from hobbyboard.errors import (
    AuthError,
    NotFoundError,
    PersistenceError,
    UploadTooLargeError,
    ValidationError,
)
from hobbyboard.schemas import HobbyForm, UserForm
from hobbyboard.storage import ImageStorage

import logging

logger = logging.getLogger(__name__)

router = APIRouter()

USER_NOT_FOUND_MESSAGE = "User not found."
UPLOAD_TOO_LARGE_MESSAGE = "Profile image must be 5 MB or smaller."
UPLOAD_FAILED_MESSAGE = "Unable to save profile image. Please try again."


def _render(
    request: Request,
    template: str,
    context: Optional[dict] = None,
    status_code: int = status.HTTP_200_OK,
):
    return templates.TemplateResponse(
        request, template, context or {}, status_code=status_code
    )


def _redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url, status_code=status.HTTP_302_FOUND)


def _users_error(request: Request, message: str, status_code: int):
    return _render(
        request,
        "display_users.html",
        {"users": [], "error_message": message},
        status_code=status_code,
    )


def _user_not_found(request: Request):
    return _users_error(request, USER_NOT_FOUND_MESSAGE, status.HTTP_404_NOT_FOUND)


def _load_user(store: RecordStore, user_id: int) -> UserRecord:
    user = store.get_user(user_id)
    if user is None:
        raise NotFoundError(f"user {user_id} does not exist")
    return user


def _render_user_form(
    request: Request,
    store: RecordStore,
    user_id: int,
    template: str,
    *,
    error_message: str,
    status_code: int,
    fallback_message: str,
):
    """
    Fetch the user and render `template` for it. A vanished user gives the
    404 list view, a failed fetch the 500 list view with `fallback_message`.
    """
    try:
        user = _load_user(store, user_id)
    except NotFoundError:
        return _user_not_found(request)
    except PersistenceError:
        logger.exception("Error fetching user %s", user_id)
        return _users_error(
            request, fallback_message, status.HTTP_500_INTERNAL_SERVER_ERROR
        )
    return _render(
        request,
        template,
        {"user": user, "error_message": error_message},
        status_code=status_code,
    )


def _store_upload(
    storage: ImageStorage, upload: Optional[UploadFile]
) -> Optional[str]:
    """Return the reference for an uploaded file, or None when nothing was sent."""
    if upload is None or not upload.filename:
        return None
    data = upload.file.read()
    try:
        return storage.store(data, upload.filename)
    except (BotoCoreError, ClientError, OSError) as exc:
        raise PersistenceError(f"storing {upload.filename!r} failed: {exc}") from exc


# Session


@router.get("/")
def home(request: Request, claim: AuthClaim = Depends(get_auth_claim)):
    if claim.is_logged_in:
        return _render(request, "index.html", {"username": claim.username})
    return _redirect("/login")


@router.get("/login")
def login_page(request: Request, claim: AuthClaim = Depends(get_auth_claim)):
    if claim.is_logged_in:
        return _render(request, "index.html", {"username": claim.username})
    return _render(request, "login.html", {"error_message": ""})


@router.post("/login")
def login(
    request: Request,
    username: str = Form(""),
    password: str = Form(""),
    store: RecordStore = Depends(get_record_store),
):
    try:
        user = authenticate(store, username, password)
    except AuthError:
        return _render(request, "login.html", {"error_message": INVALID_LOGIN_MESSAGE})
    except PersistenceError:
        logger.exception("Login error")
        return _render(request, "login.html", {"error_message": INVALID_LOGIN_MESSAGE})
    log_in(request, user.username)
    return _redirect("/")


@router.get("/logout")
def logout(request: Request):
    log_out(request)
    return _redirect("/")


@router.get("/test")
def show_test_page(request: Request, claim: AuthClaim = Depends(get_auth_claim)):
    if claim.is_logged_in:
        return _render(request, "test.html", {"name": "BYU"})
    return _render(request, "login.html", {"error_message": ""})


# Users


@router.get("/users")
def list_users(request: Request, store: RecordStore = Depends(get_record_store)):
    try:
        users = store.list_users()
    except PersistenceError as exc:
        logger.error("Database query error: %s", exc)
        return _render(
            request,
            "display_users.html",
            {
                "users": [],
                "error_message": (
                    f"Database error: {exc}. "
                    "Please check if the 'users' table exists."
                ),
            },
        )
    logger.info("Successfully retrieved %d users from database", len(users))
    return _render(request, "display_users.html", {"users": users})


@router.get("/addUser")
def add_user_page(request: Request):
    return _render(request, "add_user.html", {"error_message": ""})


@router.post("/addUser")
def add_user(
    request: Request,
    username: str = Form(""),
    password: str = Form(""),
    profile_image: Optional[UploadFile] = File(None, alias="profileImage"),
    store: RecordStore = Depends(get_record_store),
    storage: ImageStorage = Depends(get_image_storage),
):
    try:
        form = UserForm.from_form(username, password)
    except ValidationError as exc:
        return _render(
            request,
            "add_user.html",
            {"error_message": str(exc)},
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    try:
        image_ref = _store_upload(storage, profile_image)
    except UploadTooLargeError:
        return _render(
            request,
            "add_user.html",
            {"error_message": UPLOAD_TOO_LARGE_MESSAGE},
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
        )
    except ValidationError as exc:
        return _render(
            request,
            "add_user.html",
            {"error_message": str(exc)},
            status_code=status.HTTP_400_BAD_REQUEST,
        )
    except PersistenceError:
        logger.exception("Error storing profile image")
        return _render(
            request,
            "add_user.html",
            {"error_message": UPLOAD_FAILED_MESSAGE},
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    try:
        store.create_user(form.username, form.password, image_ref)
    except PersistenceError as exc:
        logger.error("Error inserting user: %s", exc)
        return _render(
            request,
            "add_user.html",
            {"error_message": "Unable to save user. Please try again."},
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    return _redirect("/users")


@router.get("/editUser/{user_id}")
def edit_user_page(
    request: Request, user_id: int, store: RecordStore = Depends(get_record_store)
):
    return _render_user_form(
        request,
        store,
        user_id,
        "edit_user.html",
        error_message="",
        status_code=status.HTTP_200_OK,
        fallback_message="Unable to load user for editing.",
    )


@router.post("/editUser/{user_id}")
def edit_user(
    request: Request,
    user_id: int,
    username: str = Form(""),
    password: str = Form(""),
    existing_image: str = Form("", alias="existingImage"),
    profile_image: Optional[UploadFile] = File(None, alias="profileImage"),
    store: RecordStore = Depends(get_record_store),
    storage: ImageStorage = Depends(get_image_storage),
):
    try:
        form = UserForm.from_form(username, password)
    except ValidationError as exc:
        return _render_user_form(
            request,
            store,
            user_id,
            "edit_user.html",
            error_message=str(exc),
            status_code=status.HTTP_400_BAD_REQUEST,
            fallback_message="Unable to load user for editing.",
        )

    try:
        uploaded_ref = _store_upload(storage, profile_image)
    except UploadTooLargeError:
        return _render_user_form(
            request,
            store,
            user_id,
            "edit_user.html",
            error_message=UPLOAD_TOO_LARGE_MESSAGE,
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            fallback_message="Unable to load user for editing.",
        )
    except ValidationError as exc:
        return _render_user_form(
            request,
            store,
            user_id,
            "edit_user.html",
            error_message=str(exc),
            status_code=status.HTTP_400_BAD_REQUEST,
            fallback_message="Unable to load user for editing.",
        )
    except PersistenceError:
        logger.exception("Error storing profile image for user %s", user_id)
        return _render_user_form(
            request,
            store,
            user_id,
            "edit_user.html",
            error_message=UPLOAD_FAILED_MESSAGE,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            fallback_message="Unable to update user.",
        )

    # Without a new upload the prior reference comes back in a hidden field.
    image_ref = uploaded_ref if uploaded_ref is not None else (existing_image or None)

    try:
        rows_updated = store.update_user(
            user_id,
            username=form.username,
            password=form.password,
            profile_image=image_ref,
        )
    except PersistenceError as exc:
        logger.error("Error updating user: %s", exc)
        return _render_user_form(
            request,
            store,
            user_id,
            "edit_user.html",
            error_message="Unable to update user. Please try again.",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            fallback_message="Unable to update user.",
        )
    if rows_updated == 0:
        return _user_not_found(request)
    return _redirect("/users")


@router.post("/deleteUser/{user_id}")
def delete_user(
    request: Request, user_id: int, store: RecordStore = Depends(get_record_store)
):
    try:
        store.delete_user(user_id)
    except PersistenceError as exc:
        logger.error("Error deleting user %s: %s", user_id, exc)
        # The one route that answers failures with JSON instead of a page.
        return JSONResponse(
            {"err": "Unable to delete user."},
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    return _redirect("/users")


# Hobbies


@router.get("/displayHobbies/{user_id}")
def display_hobbies(
    request: Request, user_id: int, store: RecordStore = Depends(get_record_store)
):
    try:
        user = _load_user(store, user_id)
        hobbies = store.list_hobbies(user_id)
    except NotFoundError:
        return _user_not_found(request)
    except PersistenceError as exc:
        logger.error("Error loading hobbies: %s", exc)
        return _users_error(
            request,
            "Unable to load hobbies.",
            status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    return _render(
        request,
        "display_hobbies.html",
        {
            "user": user,
            "hobbies": hobbies,
            "error_message": "",
            "success_message": "",
        },
    )


@router.get("/addHobbies/{user_id}")
def add_hobby_page(
    request: Request, user_id: int, store: RecordStore = Depends(get_record_store)
):
    return _render_user_form(
        request,
        store,
        user_id,
        "add_hobbies.html",
        error_message="",
        status_code=status.HTTP_200_OK,
        fallback_message="Unable to load user.",
    )


@router.post("/addHobbies/{user_id}")
def add_hobby(
    request: Request,
    user_id: int,
    hobby_description: str = Form(""),
    date_learned: str = Form(""),
    store: RecordStore = Depends(get_record_store),
):
    try:
        form = HobbyForm.from_form(hobby_description, date_learned)
    except ValidationError as exc:
        return _render_user_form(
            request,
            store,
            user_id,
            "add_hobbies.html",
            error_message=str(exc),
            status_code=status.HTTP_400_BAD_REQUEST,
            fallback_message="Unable to add hobby.",
        )

    try:
        store.create_hobby(user_id, form.hobby_description, form.date_learned)
    except PersistenceError as exc:
        logger.error("Error inserting hobby: %s", exc)
        return _render_user_form(
            request,
            store,
            user_id,
            "add_hobbies.html",
            error_message="Unable to add hobby. Please try again.",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            fallback_message="Unable to add hobby.",
        )
    return _redirect(f"/displayHobbies/{user_id}")


@router.post("/hobbies/{user_id}/delete/{hobby_id}")
def delete_hobby(
    request: Request,
    user_id: int,
    hobby_id: int,
    store: RecordStore = Depends(get_record_store),
):
    try:
        # Matching on both ids keeps one user from deleting another's hobby.
        store.delete_hobby(user_id, hobby_id)
    except PersistenceError as exc:
        logger.error("Error deleting hobby: %s", exc)
        try:
            user = _load_user(store, user_id)
            hobbies = store.list_hobbies(user_id)
        except NotFoundError:
            return _user_not_found(request)
        except PersistenceError as fetch_exc:
            logger.error("Error fetching after delete failure: %s", fetch_exc)
            return _users_error(
                request,
                "Unable to delete hobby.",
                status.HTTP_500_INTERNAL_SERVER_ERROR,
            )
        return _render(
            request,
            "display_hobbies.html",
            {
                "user": user,
                "hobbies": hobbies,
                "error_message": "Unable to delete hobby. Please try again.",
                "success_message": "",
            },
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    return _redirect(f"/displayHobbies/{user_id}")
