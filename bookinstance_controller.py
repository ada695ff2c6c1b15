"""Catalog pages for book instances (physical copies of a book)."""

import asyncio

from fastapi import APIRouter, Depends, HTTPException, Request
from loguru import logger
from starlette.concurrency import run_in_threadpool

from repositories import (
    BookInstanceRepository,
    BookRepository,
    get_book_repository,
    get_bookinstance_repository,
)
from schemas import BookInstance, BookInstanceRecord
from validation import BOOKINSTANCE_RULES, ValidationResult, validate
from views import views

router = APIRouter()

LIST_URL = "/catalog/bookinstances"


async def _validated_form(request: Request) -> ValidationResult:
    form = await request.form()
    return validate(form, BOOKINSTANCE_RULES)


def _candidate(values: dict) -> BookInstance:
    return BookInstance(
        book=values["book"],
        imprint=values["imprint"],
        status=values["status"] or None,
        due_back=values["due_back"],
    )


async def _sorted_books(books: BookRepository):
    return await run_in_threadpool(books.find_all, fields=["title"], sort_by="title")


# ----------------------
# List & detail
# ----------------------

@router.get("/bookinstances")
async def bookinstance_list(
    request: Request,
    instances: BookInstanceRepository = Depends(get_bookinstance_repository),
):
    all_instances = await run_in_threadpool(instances.find_all, populate=True)
    return views.render(request, "bookinstance_list", {
        "title": "Book Instance List",
        "bookinstance_list": all_instances,
    })


@router.get("/bookinstance/create")
async def bookinstance_create_get(
    request: Request,
    books: BookRepository = Depends(get_book_repository),
):
    return views.render(request, "bookinstance_form", {
        "title": "Create BookInstance",
        "book_list": await _sorted_books(books),
    })


@router.post("/bookinstance/create")
async def bookinstance_create_post(
    request: Request,
    books: BookRepository = Depends(get_book_repository),
    instances: BookInstanceRepository = Depends(get_bookinstance_repository),
):
    result = await _validated_form(request)
    candidate = _candidate(result.values)

    if not result.is_empty():
        logger.bind(errors=result.messages()).info("bookinstance.create.invalid")
        return views.render(request, "bookinstance_form", {
            "title": "Create BookInstance",
            "book_list": await _sorted_books(books),
            "selected_book": candidate.book,
            "errors": result.array(),
            "bookinstance": BookInstanceRecord(**candidate.model_dump()),
        })

    created = await run_in_threadpool(instances.create, candidate)
    logger.bind(bookinstance_id=created.id, book=created.book).info("bookinstance.created")
    return views.redirect(created.url)


@router.get("/bookinstance/{instance_id}")
async def bookinstance_detail(
    instance_id: str,
    request: Request,
    instances: BookInstanceRepository = Depends(get_bookinstance_repository),
):
    instance = await run_in_threadpool(instances.find_by_id, instance_id, populate=True)
    if instance is None:
        raise HTTPException(status_code=404, detail="Book copy not found")
    return views.render(request, "bookinstance_detail", {
        "title": "Book",
        "bookinstance": instance,
    })


# ----------------------
# Delete
# ----------------------

def _delete_context(instance: BookInstanceRecord) -> dict:
    return {
        "title": "Delete Book Instance",
        "bookinstance": instance,
        "book_status": not instance.is_loaned,
    }


@router.get("/bookinstance/{instance_id}/delete")
async def bookinstance_delete_get(
    instance_id: str,
    request: Request,
    instances: BookInstanceRepository = Depends(get_bookinstance_repository),
):
    instance = await run_in_threadpool(
        instances.find_by_id, instance_id, populate=True, book_fields=["title", "isbn"]
    )
    if instance is None:
        return views.redirect(LIST_URL)
    return views.render(request, "bookinstance_delete", _delete_context(instance))


@router.post("/bookinstance/{instance_id}/delete")
async def bookinstance_delete_post(
    instance_id: str,
    request: Request,
    instances: BookInstanceRepository = Depends(get_bookinstance_repository),
):
    instance = await run_in_threadpool(
        instances.find_by_id, instance_id, populate=True, book_fields=["title", "isbn"]
    )
    if instance is None:
        return views.redirect(LIST_URL)

    if instance.is_loaned:
        # Copy is still out on loan
        logger.bind(bookinstance_id=instance_id).warning("bookinstance.delete.refused")
        return views.render(request, "bookinstance_delete", _delete_context(instance))

    form = await request.form()
    target_id = form.get("bookinstance_id") or instance_id
    if target_id != instance_id:
        # Only the copy whose loan status was checked may be removed
        logger.bind(bookinstance_id=instance_id, requested_id=target_id).warning("bookinstance.delete.mismatch")
        return views.redirect(LIST_URL)

    await run_in_threadpool(instances.delete_by_id, instance_id)
    logger.bind(bookinstance_id=instance_id).info("bookinstance.deleted")
    return views.redirect(LIST_URL)


# ----------------------
# Update
# ----------------------

@router.get("/bookinstance/{instance_id}/update")
async def bookinstance_update_get(
    instance_id: str,
    request: Request,
    books: BookRepository = Depends(get_book_repository),
    instances: BookInstanceRepository = Depends(get_bookinstance_repository),
):
    instance, all_books = await asyncio.gather(
        run_in_threadpool(instances.find_by_id, instance_id),
        run_in_threadpool(books.find_all, sort_by="title"),
    )
    if instance is None:
        raise HTTPException(status_code=404, detail="Book Instance not found.")
    return views.render(request, "bookinstance_form", {
        "title": "Update Book Instance",
        "bookinstance": instance,
        "selected_book": instance.book_id,
        "book_list": all_books,
    })


@router.post("/bookinstance/{instance_id}/update")
async def bookinstance_update_post(
    instance_id: str,
    request: Request,
    books: BookRepository = Depends(get_book_repository),
    instances: BookInstanceRepository = Depends(get_bookinstance_repository),
):
    result = await _validated_form(request)
    candidate = _candidate(result.values)
    record = BookInstanceRecord(id=instance_id, **candidate.model_dump())

    if not result.is_empty():
        logger.bind(bookinstance_id=instance_id, errors=result.messages()).info("bookinstance.update.invalid")
        return views.render(request, "bookinstance_form", {
            "title": "Update Book Instance",
            "bookinstance": record,
            "selected_book": candidate.book,
            "book_list": await _sorted_books(books),
            "errors": result.array(),
        })

    updated = await run_in_threadpool(instances.update_by_id, instance_id, candidate)
    if not updated:
        raise HTTPException(status_code=404, detail="Book Instance not found.")
    logger.bind(bookinstance_id=instance_id).info("bookinstance.updated")
    return views.redirect(record.url)
