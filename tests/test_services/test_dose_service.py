"""
Tests for Dose Service
Tests the mark-taken flow, photo handling and the in-flight guard
"""

import asyncio
import pytest
from datetime import timedelta

from exceptions import (
    BackendUnavailableError,
    NotFoundError,
    SubmissionInProgressError,
    ValidationError,
)
from services.dose_service import DoseService, MarkTakenGuard
from services.medication_service import medication_service
from services.storage_service import ImageStorage
from tools.calendar_dates import today_in


@pytest.fixture
def storage(tmp_path):
    return ImageStorage(root_dir=str(tmp_path), base_url="/media", max_bytes=5 * 1024 * 1024)


@pytest.fixture
def dose_service(storage):
    return DoseService(storage=storage)


@pytest.fixture
def guard():
    return MarkTakenGuard()


class TestMarkTakenGuard:
    """Tests for the in-flight guard"""

    @pytest.mark.unit
    def test_second_acquire_rejected(self, guard):
        guard.acquire("u1", "m1")

        with pytest.raises(SubmissionInProgressError):
            guard.acquire("u1", "m1")

    @pytest.mark.unit
    def test_other_medication_allowed(self, guard):
        guard.acquire("u1", "m1")
        guard.acquire("u1", "m2")

        assert len(guard) == 2

    @pytest.mark.unit
    def test_release(self, guard):
        guard.acquire("u1", "m1")
        guard.release("u1", "m1")

        assert not guard.is_in_flight("u1", "m1")
        guard.acquire("u1", "m1")


class TestMarkTaken:
    """Tests for marking doses taken"""

    @pytest.mark.asyncio
    async def test_defaults_to_today(self, dose_service, guard, db_session, test_patient, test_medication):
        log = await dose_service.mark_taken(test_patient, test_medication.id, guard, db=db_session)

        assert log.date_taken == today_in("UTC").isoformat()
        assert log.image_url is None
        assert len(guard) == 0

    @pytest.mark.asyncio
    async def test_with_photo(
        self, dose_service, guard, storage, db_session, test_patient, test_medication, image_bytes
    ):
        log = await dose_service.mark_taken(
            test_patient,
            test_medication.id,
            guard,
            photo=image_bytes,
            photo_content_type="image/png",
            photo_filename="my pill.png",
            db=db_session
        )

        assert log.image_url.startswith(f"/media/{test_patient.id}/")
        assert log.image_url.endswith("_my_pill.png")
        relative = log.image_url[len("/media/"):]
        assert (storage.root_dir / relative).read_bytes() == image_bytes

    @pytest.mark.asyncio
    async def test_past_day_without_photo(self, dose_service, guard, db_session, test_patient, test_medication):
        yesterday = today_in("UTC") - timedelta(days=1)

        log = await dose_service.mark_taken(
            test_patient, test_medication.id, guard, date_taken=yesterday, db=db_session
        )

        assert log.date_taken == yesterday.isoformat()

    @pytest.mark.asyncio
    async def test_photo_only_for_today(
        self, dose_service, guard, db_session, test_patient, test_medication, image_bytes
    ):
        with pytest.raises(ValidationError):
            await dose_service.mark_taken(
                test_patient,
                test_medication.id,
                guard,
                date_taken=today_in("UTC") - timedelta(days=1),
                photo=image_bytes,
                photo_content_type="image/png",
                db=db_session
            )

    @pytest.mark.asyncio
    async def test_future_date_rejected(self, dose_service, guard, db_session, test_patient, test_medication):
        with pytest.raises(ValidationError):
            await dose_service.mark_taken(
                test_patient,
                test_medication.id,
                guard,
                date_taken=today_in("UTC") + timedelta(days=1),
                db=db_session
            )

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content_type", ["image/gif", "application/pdf", None])
    async def test_photo_type_rejected(
        self, dose_service, guard, db_session, test_patient, test_medication, image_bytes, content_type
    ):
        with pytest.raises(ValidationError):
            await dose_service.mark_taken(
                test_patient,
                test_medication.id,
                guard,
                photo=image_bytes,
                photo_content_type=content_type,
                db=db_session
            )

    @pytest.mark.asyncio
    async def test_photo_too_large(self, dose_service, guard, db_session, test_patient, test_medication):
        with pytest.raises(ValidationError):
            await dose_service.mark_taken(
                test_patient,
                test_medication.id,
                guard,
                photo=b"x" * (2 * 1024 * 1024 + 1),
                photo_content_type="image/jpeg",
                db=db_session
            )

    @pytest.mark.asyncio
    async def test_unknown_medication_releases_guard(self, dose_service, guard, db_session, test_patient):
        with pytest.raises(NotFoundError):
            await dose_service.mark_taken(test_patient, "missing", guard, db=db_session)

        assert not guard.is_in_flight(test_patient.id, "missing")

    @pytest.mark.asyncio
    async def test_duplicate_submission_while_uploading(
        self, guard, db_session, test_patient, test_medication, image_bytes
    ):
        release = asyncio.Event()

        class SlowStorage:
            async def upload_image(self, user, data, content_type, filename=None):
                await release.wait()
                return "/media/slow.png"

        service = DoseService(storage=SlowStorage())
        first = asyncio.create_task(service.mark_taken(
            test_patient,
            test_medication.id,
            guard,
            photo=image_bytes,
            photo_content_type="image/png",
            db=db_session
        ))
        await asyncio.sleep(0)
        assert guard.is_in_flight(test_patient.id, test_medication.id)

        with pytest.raises(SubmissionInProgressError):
            await service.mark_taken(test_patient, test_medication.id, guard, db=db_session)

        release.set()
        log = await first
        assert log.image_url == "/media/slow.png"
        assert not guard.is_in_flight(test_patient.id, test_medication.id)

    @pytest.mark.asyncio
    async def test_failed_upload_writes_no_log(
        self, guard, db_session, test_patient, test_medication, image_bytes
    ):
        class BrokenStorage:
            async def upload_image(self, user, data, content_type, filename=None):
                raise BackendUnavailableError("storage offline")

        service = DoseService(storage=BrokenStorage())

        with pytest.raises(BackendUnavailableError):
            await service.mark_taken(
                test_patient,
                test_medication.id,
                guard,
                photo=image_bytes,
                photo_content_type="image/png",
                db=db_session
            )

        db_session.refresh(test_medication)
        assert test_medication.logs == []
        assert len(guard) == 0

    @pytest.mark.asyncio
    async def test_failed_log_removes_uploaded_photo(
        self, dose_service, guard, db_session, test_patient, test_medication, image_bytes, tmp_path, monkeypatch
    ):
        async def failing_create_log(*args, **kwargs):
            raise BackendUnavailableError("database offline")

        monkeypatch.setattr(medication_service, "create_log", failing_create_log)

        with pytest.raises(BackendUnavailableError):
            await dose_service.mark_taken(
                test_patient,
                test_medication.id,
                guard,
                photo=image_bytes,
                photo_content_type="image/png",
                photo_filename="pill.png",
                db=db_session
            )

        assert [p for p in tmp_path.rglob("*") if p.is_file()] == []
        assert len(guard) == 0


class TestImageStorage:
    """Tests for storing and deleting images"""

    @pytest.mark.asyncio
    async def test_delete_image(self, storage, test_patient, image_bytes, tmp_path):
        url = await storage.upload_image(test_patient, image_bytes, "image/png", "scan.png")
        stored = tmp_path / url[len("/media/"):]
        assert stored.read_bytes() == image_bytes

        await storage.delete_image(url)

        assert not stored.exists()

    @pytest.mark.asyncio
    async def test_delete_rejects_foreign_url(self, storage):
        with pytest.raises(ValidationError):
            await storage.delete_image("https://example.com/other.png")
