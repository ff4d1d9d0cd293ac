"""Tests for the HTTP certificate renderer."""

import json
from datetime import date

import httpx
import pytest

from codearc.core.exceptions import RenderFailure
from codearc.progress.certificate import CertificatePayload, HttpCertificateRenderer


RENDER_URL = "http://renderer.internal/render/certificate"

PAYLOAD = CertificatePayload(
    student_name="Sam Student",
    course_title="Python Basics",
    mentor_name="Maria Mentor",
    completion_date=date(2024, 3, 14),
)


async def collect(renderer: HttpCertificateRenderer) -> tuple[str, bytes]:
    rendered = await renderer.render(PAYLOAD)
    body = b"".join([chunk async for chunk in rendered.chunks])
    return rendered.content_type, body


class TestCertificatePayload:
    def test_to_dict_uses_iso_date(self) -> None:
        assert PAYLOAD.to_dict() == {
            "student_name": "Sam Student",
            "course_title": "Python Basics",
            "mentor_name": "Maria Mentor",
            "completion_date": "2024-03-14",
        }

    def test_filename(self) -> None:
        assert PAYLOAD.filename == "certificate-python-basics.pdf"


class TestHttpCertificateRenderer:
    """Tests for HttpCertificateRenderer.render."""

    @pytest.mark.asyncio
    async def test_streams_document(self) -> None:
        received = {}

        def handler(request: httpx.Request) -> httpx.Response:
            received["body"] = json.loads(request.content)
            return httpx.Response(
                200, content=b"%PDF-1.7 certificate", headers={"content-type": "application/pdf"}
            )

        renderer = HttpCertificateRenderer(
            RENDER_URL, transport=httpx.MockTransport(handler)
        )
        content_type, body = await collect(renderer)

        assert content_type == "application/pdf"
        assert body == b"%PDF-1.7 certificate"
        assert received["body"]["student_name"] == "Sam Student"
        assert received["body"]["completion_date"] == "2024-03-14"

    @pytest.mark.asyncio
    async def test_error_status_is_render_failure(self) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(500))
        renderer = HttpCertificateRenderer(RENDER_URL, transport=transport)

        with pytest.raises(RenderFailure):
            await renderer.render(PAYLOAD)

    @pytest.mark.asyncio
    async def test_timeout_is_render_failure(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("renderer too slow", request=request)

        renderer = HttpCertificateRenderer(
            RENDER_URL, timeout=0.1, transport=httpx.MockTransport(handler)
        )

        with pytest.raises(RenderFailure) as exc_info:
            await renderer.render(PAYLOAD)

        assert exc_info.value.message == "Certificate renderer timed out"

    @pytest.mark.asyncio
    async def test_unreachable_is_render_failure(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        renderer = HttpCertificateRenderer(
            RENDER_URL, transport=httpx.MockTransport(handler)
        )

        with pytest.raises(RenderFailure):
            await renderer.render(PAYLOAD)
