"""School administration API call sites.

Thin wrappers over ``ResilientRequestExecutor.execute``. Payloads are the
backend's JSON shapes passed through untouched.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from faceit_client.middleware.error_handler import ApiError
from faceit_client.services.request_executor import ResilientRequestExecutor
from faceit_client.services.token_store import (
    ACCESS_TOKEN_KEY,
    REFRESH_TOKEN_KEY,
    USER_DATA_KEY,
    TokenStore,
)

logger = logging.getLogger(__name__)


def _drop_empty(filters: dict[str, Any] | None) -> dict[str, Any] | None:
    if not filters:
        return None
    return {key: value for key, value in filters.items() if value is not None}


class SchoolApi:
    """Domain-level API facade used by the administration views."""

    def __init__(self, executor: ResilientRequestExecutor, token_store: TokenStore) -> None:
        self._executor = executor
        self._tokens = token_store

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    async def login(self, email: str, password: str) -> dict:
        """Authenticate and store the returned tokens and user profile."""
        data = await self._executor.execute(
            "POST", "/auth/login/", {"email": email, "password": password}
        )
        if isinstance(data, dict):
            if data.get("access"):
                self._tokens.set(ACCESS_TOKEN_KEY, data["access"])
            if data.get("refresh"):
                self._tokens.set(REFRESH_TOKEN_KEY, data["refresh"])
            if data.get("user") is not None:
                self._tokens.set(USER_DATA_KEY, json.dumps(data["user"]))
        return data

    async def logout(self) -> None:
        """Notify the backend, then clear stored credentials regardless of outcome."""
        try:
            await self._executor.execute("POST", "/auth/logout/")
        finally:
            for key in (ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY, USER_DATA_KEY):
                self._tokens.remove(key)
            logger.info("Stored credentials cleared")

    async def refresh_token(self) -> dict:
        """Exchange the stored refresh token for a new access token.

        Raises ``ApiError`` (401) without a request when no refresh token is
        stored. A rotated refresh token in the reply replaces the old one.
        """
        refresh = self._tokens.get(REFRESH_TOKEN_KEY)
        if not refresh:
            raise ApiError(401, "No refresh token stored")
        data = await self._executor.execute("POST", "/auth/token/refresh/", {"refresh": refresh})
        if isinstance(data, dict):
            if data.get("access"):
                self._tokens.set(ACCESS_TOKEN_KEY, data["access"])
            if data.get("refresh"):
                self._tokens.set(REFRESH_TOKEN_KEY, data["refresh"])
        return data

    async def get_current_user(self) -> Any:
        return await self._executor.execute("GET", "/auth/user/")

    # ------------------------------------------------------------------
    # Students
    # ------------------------------------------------------------------

    async def get_students(self) -> Any:
        return await self._executor.execute("GET", "/students/")

    async def create_student(self, student: dict) -> Any:
        return await self._executor.execute("POST", "/students/", student)

    async def update_student(self, student_id: int, student: dict) -> Any:
        return await self._executor.execute("PUT", f"/students/{student_id}/", student)

    async def delete_student(self, student_id: int) -> bool:
        await self._executor.execute("DELETE", f"/students/{student_id}/")
        return True

    # ------------------------------------------------------------------
    # Face recognition (multipart uploads)
    # ------------------------------------------------------------------

    async def upload_face_image(
        self,
        student_id: int,
        image: bytes,
        filename: str = "face.jpg",
        content_type: str = "image/jpeg",
    ) -> Any:
        return await self._executor.execute(
            "POST",
            "/face-recognition/upload/",
            data={"student_id": str(student_id)},
            files={"image": (filename, image, content_type)},
        )

    async def recognize_face(
        self,
        image: bytes,
        filename: str = "face.jpg",
        content_type: str = "image/jpeg",
    ) -> Any:
        return await self._executor.execute(
            "POST",
            "/face-recognition/recognize/",
            files={"image": (filename, image, content_type)},
        )

    # ------------------------------------------------------------------
    # Attendance
    # ------------------------------------------------------------------

    async def get_attendance(self, filters: dict[str, Any] | None = None) -> Any:
        return await self._executor.execute("GET", "/attendance/", params=_drop_empty(filters))

    async def mark_attendance(self, record: dict) -> Any:
        return await self._executor.execute("POST", "/attendance/", record)

    async def update_attendance(self, record_id: int, record: dict) -> Any:
        return await self._executor.execute("PUT", f"/attendance/{record_id}/", record)

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    async def generate_report(self, report_type: str, filters: dict[str, Any]) -> Any:
        return await self._executor.execute("POST", f"/reports/{report_type}/", filters)

    # ------------------------------------------------------------------
    # Admin users
    # ------------------------------------------------------------------

    async def get_admin_users(self) -> Any:
        return await self._executor.execute("GET", "/admin-users/")

    async def create_admin_user(self, user: dict) -> Any:
        return await self._executor.execute("POST", "/admin-users/", user)

    async def update_admin_user(self, user_id: int, user: dict) -> Any:
        return await self._executor.execute("PUT", f"/admin-users/{user_id}/", user)

    async def delete_admin_user(self, user_id: int) -> bool:
        await self._executor.execute("DELETE", f"/admin-users/{user_id}/")
        return True

    # ------------------------------------------------------------------
    # Timetable
    # ------------------------------------------------------------------

    async def get_timetable_entries(self, filters: dict[str, Any] | None = None) -> Any:
        return await self._executor.execute(
            "GET", "/timetable/entries/", params=_drop_empty(filters)
        )

    async def create_timetable_entry(self, entry: dict) -> Any:
        return await self._executor.execute("POST", "/timetable/entries/", entry)

    async def update_timetable_entry(self, entry_id: int, updates: dict) -> Any:
        return await self._executor.execute("PUT", f"/timetable/entries/{entry_id}/", updates)

    async def delete_timetable_entry(self, entry_id: int) -> bool:
        await self._executor.execute("DELETE", f"/timetable/entries/{entry_id}/")
        return True

    async def get_time_slots(self) -> Any:
        return await self._executor.execute("GET", "/timetable/timeslots/")

    async def create_time_slot(self, time_slot: dict) -> Any:
        return await self._executor.execute("POST", "/timetable/timeslots/", time_slot)

    async def get_rooms(self) -> Any:
        return await self._executor.execute("GET", "/timetable/rooms/")

    async def create_room(self, room: dict) -> Any:
        return await self._executor.execute("POST", "/timetable/rooms/", room)

    async def get_classrooms(self) -> Any:
        """Classrooms are the timetable rooms."""
        return await self.get_rooms()

    async def get_teachers(self) -> Any:
        return await self._executor.execute("GET", "/timetable/teachers/")

    async def get_courses(self) -> Any:
        return await self._executor.execute("GET", "/timetable/courses/")

    async def get_academic_levels(self) -> Any:
        return await self._executor.execute("GET", "/levels/")

    async def get_current_sessions(self, teacher_id: int | None = None) -> list:
        # The backend exposes no live-session endpoint; callers get an empty list
        return []

    # ------------------------------------------------------------------
    # System
    # ------------------------------------------------------------------

    async def get_api_info(self) -> Any:
        return await self._executor.execute("GET", "/system/health/")
