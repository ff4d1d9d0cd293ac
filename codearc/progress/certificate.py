"""Certificate rendering through an external HTTP renderer.

The renderer receives the certificate data as JSON and answers with the
finished document, which is streamed back to the student unchanged. Failures
before the first byte surface as RenderFailure; once bytes have been sent the
response can no longer change, so later failures are only logged.
"""

from collections.abc import AsyncIterator
from dataclasses import asdict, dataclass
from datetime import date

import httpx
import structlog

from codearc.core.exceptions import RenderFailure


logger = structlog.get_logger(__name__)

DEFAULT_CONTENT_TYPE = "application/pdf"


@dataclass(frozen=True)
class CertificatePayload:
    """Data the renderer lays out on the certificate."""

    student_name: str
    course_title: str
    mentor_name: str
    completion_date: date

    def to_dict(self) -> dict[str, str]:
        data = asdict(self)
        data["completion_date"] = self.completion_date.isoformat()
        return data

    @property
    def filename(self) -> str:
        slug = "-".join(self.course_title.lower().split()) or "course"
        return f"certificate-{slug}.pdf"


@dataclass
class RenderedCertificate:
    content_type: str
    chunks: AsyncIterator[bytes]


class HttpCertificateRenderer:
    """Client for the certificate rendering service."""

    def __init__(
        self,
        url: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.url = url
        self.timeout = timeout
        self._transport = transport

    async def render(self, payload: CertificatePayload) -> RenderedCertificate:
        """Ask the renderer for a certificate and start streaming it.

        Raises:
            RenderFailure: If the renderer is unreachable, times out or
                answers with an error status.
        """
        client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        try:
            request = client.build_request("POST", self.url, json=payload.to_dict())
            response = await client.send(request, stream=True)
        except httpx.TimeoutException as e:
            await client.aclose()
            logger.error("certificate_renderer_timeout", error=str(e))
            raise RenderFailure("Certificate renderer timed out") from e
        except httpx.RequestError as e:
            await client.aclose()
            logger.error("certificate_renderer_request_error", error=str(e))
            raise RenderFailure from e

        if response.status_code != httpx.codes.OK:
            await response.aclose()
            await client.aclose()
            logger.error(
                "certificate_renderer_failed", status_code=response.status_code
            )
            raise RenderFailure

        content_type = response.headers.get("content-type", DEFAULT_CONTENT_TYPE)
        return RenderedCertificate(
            content_type=content_type,
            chunks=self._stream(client, response),
        )

    async def _stream(
        self, client: httpx.AsyncClient, response: httpx.Response
    ) -> AsyncIterator[bytes]:
        sent = 0
        try:
            async for chunk in response.aiter_bytes():
                sent += len(chunk)
                yield chunk
        except httpx.HTTPError as e:
            # Headers are already out; the only option left is to stop.
            logger.error("certificate_stream_interrupted", bytes_sent=sent, error=str(e))
        finally:
            await response.aclose()
            await client.aclose()
