"""FastAPI entrypoint and HTTP routes."""

from typing import AsyncIterator

from fastapi import Depends, FastAPI, File, HTTPException, UploadFile, status

from listing_admin.api.auth import InternalAuthDependency
from listing_admin.api.schemas import ImageSummary, ImageUploadResponse, ImageWarning
from listing_admin.config.settings import get_settings
from listing_admin.monitoring.logging import configure_logging
from listing_admin.services.batch import ImageBatchController, SelectedFile
from listing_admin.services.upload import UploadError, UploadSink, build_upload_sink, upload_batch


async def get_upload_sink() -> AsyncIterator[UploadSink]:
    """Yield the configured upload sink and close it after the request."""

    sink = build_upload_sink(get_settings())
    try:
        yield sink
    finally:
        await sink.close()


def create_app() -> FastAPI:
    """Initialise the FastAPI application."""

    settings = get_settings()
    configure_logging()
    app = FastAPI(
        title="Listing Admin API",
        version="0.1.0",
        docs_url="/docs" if settings.environment != "prod" else None,
        redoc_url="/redoc" if settings.environment != "prod" else None,
    )

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Simple health endpoint used for readiness probes."""

        return {"status": "ok"}

    @app.post(
        "/admin/images",
        tags=["images"],
        response_model=ImageUploadResponse,
        dependencies=[InternalAuthDependency],
    )
    async def upload_listing_images(
        files: list[UploadFile] = File(...),
        sink: UploadSink = Depends(get_upload_sink),
    ) -> ImageUploadResponse:
        """Normalise a selection of listing photos and upload the accepted ones."""

        selection = [
            SelectedFile(
                data=await upload.read(),
                name=upload.filename or "image",
                declared_size=upload.size,
                content_type=upload.content_type,
            )
            for upload in files
        ]
        controller = ImageBatchController.from_settings(get_settings())
        report = await controller.add_files(selection)

        try:
            urls = await upload_batch(controller.batch, sink)
        except UploadError as exc:
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail=str(exc),
            ) from exc

        return ImageUploadResponse(
            urls=urls,
            images=[ImageSummary.from_entry(entry) for entry in controller.batch],
            warnings=[ImageWarning.from_rejection(rejection) for rejection in report.rejections],
        )

    return app


app = create_app()
