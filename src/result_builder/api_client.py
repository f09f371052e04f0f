#!/usr/bin/env python3
"""
RESULT API CLIENT - Async access to the school's result-data API
Fetch classes, terms, results, grade scales and report metadata

ENDPOINTS:
✅ GET  /classes, /terms
✅ GET  /classes/{classId}/subjects, /classes/{classId}/students
✅ GET  /results?classId=&termId=          (class cohort)
✅ GET  /results/student/{studentId}/term/{termId}
✅ GET  /grade-scales/active
✅ GET  /results/report-card/{studentId}/{termId}  (printing metadata)
✅ POST /results, /results/publish, /results/unpublish
✅ Image proxy: {base}/proxy/image?url=...  (same-origin images for the PDF)

Every response is wrapped as {"success": bool, "data": ...}. Anything other
than a successful envelope raises UpstreamFetchError. There is no automatic
retry; callers decide whether to offer one.

Priority: HIGH - Sole source of result data for report generation
Dependencies: httpx, data_models
"""

from typing import Any, Dict, List, Optional
from urllib.parse import quote
import logging

import httpx
from pydantic import ValidationError as PydanticValidationError

from .data_models import GradeScale, ReportMetadata, StudentResult
from .errors import UpstreamFetchError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class ResultApiClient:
    """Thin async wrapper over the result-data API"""

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        image_proxy_path: str = "/proxy/image",
        transport: Optional[httpx.AsyncBaseTransport] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        """
        Args:
            base_url: API root, e.g. https://school.example/api
            timeout: Per-request timeout in seconds
            image_proxy_path: Path of the same-origin image proxy
            transport: Optional httpx transport (tests pass a MockTransport)
            headers: Extra headers such as Authorization
        """
        self.base_url = base_url.rstrip("/")
        self.image_proxy_path = image_proxy_path
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout),
            transport=transport,
            headers=headers,
        )

    async def __aenter__(self) -> "ResultApiClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, endpoint: str, **kwargs) -> Any:
        """Perform one call and unwrap the {success, data} envelope"""
        logger.debug(f"{method} {endpoint} {kwargs.get('params') or ''}")
        try:
            response = await self._client.request(method, endpoint, **kwargs)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.error(f"Result API returned HTTP {status} for {method} {endpoint}")
            raise UpstreamFetchError(
                f"Result API returned HTTP {status} for {endpoint}",
                endpoint=endpoint,
                status_code=status,
            ) from e
        except httpx.RequestError as e:
            logger.error(f"Network error calling result API {endpoint}: {e}")
            raise UpstreamFetchError(
                f"Network error calling result API {endpoint}: {e}", endpoint=endpoint
            ) from e
        except ValueError as e:
            logger.error(f"Result API returned invalid JSON for {endpoint}")
            raise UpstreamFetchError(
                f"Invalid JSON from result API {endpoint}: {e}",
                endpoint=endpoint,
                status_code=response.status_code,
            ) from e

        if not isinstance(payload, dict) or not payload.get("success"):
            message = payload.get("message") if isinstance(payload, dict) else None
            raise UpstreamFetchError(
                f"Result API call {endpoint} was not successful: {message or 'no message'}",
                endpoint=endpoint,
                status_code=response.status_code,
            )
        return payload.get("data")

    def _parse(self, model, data: Any, endpoint: str):
        try:
            return model.model_validate(data)
        except PydanticValidationError as e:
            raise UpstreamFetchError(
                f"Unexpected {model.__name__} payload from {endpoint}: {e.error_count()} errors",
                endpoint=endpoint,
            ) from e

    def _as_list(self, data: Any, endpoint: str) -> List[Dict[str, Any]]:
        if data is None:
            return []
        if not isinstance(data, list):
            raise UpstreamFetchError(
                f"Expected a list from {endpoint}, got {type(data).__name__}", endpoint=endpoint
            )
        return data

    # ---- lookups -------------------------------------------------------

    async def get_classes(self) -> List[Dict[str, Any]]:
        return self._as_list(await self._request("GET", "/classes"), "/classes")

    async def get_terms(self) -> List[Dict[str, Any]]:
        return self._as_list(await self._request("GET", "/terms"), "/terms")

    async def get_subjects(self, class_id: str) -> List[Dict[str, Any]]:
        endpoint = f"/classes/{class_id}/subjects"
        return self._as_list(await self._request("GET", endpoint), endpoint)

    async def get_students(self, class_id: str) -> List[Dict[str, Any]]:
        endpoint = f"/classes/{class_id}/students"
        return self._as_list(await self._request("GET", endpoint), endpoint)

    # ---- results -------------------------------------------------------

    async def get_class_results(self, class_id: str, term_id: str) -> List[StudentResult]:
        """Every StudentResult of one class+term cohort"""
        endpoint = "/results"
        data = await self._request("GET", endpoint, params={"classId": class_id, "termId": term_id})
        results = [self._parse(StudentResult, item, endpoint) for item in self._as_list(data, endpoint)]
        logger.info(f"Fetched {len(results)} results for class {class_id}, term {term_id}")
        return results

    async def get_student_result(self, student_id: str, term_id: str) -> StudentResult:
        endpoint = f"/results/student/{student_id}/term/{term_id}"
        data = await self._request("GET", endpoint)
        if data is None:
            raise UpstreamFetchError(
                f"No result for student {student_id} in term {term_id}", endpoint=endpoint, status_code=404
            )
        return self._parse(StudentResult, data, endpoint)

    async def get_active_grade_scale(self) -> GradeScale:
        endpoint = "/grade-scales/active"
        data = await self._request("GET", endpoint)
        if data is None:
            raise UpstreamFetchError("No active grade scale configured", endpoint=endpoint, status_code=404)
        return self._parse(GradeScale, data, endpoint)

    async def get_report_metadata(self, student_id: str, term_id: str) -> ReportMetadata:
        endpoint = f"/results/report-card/{student_id}/{term_id}"
        data = await self._request("GET", endpoint)
        return self._parse(ReportMetadata, data, endpoint)

    async def save_result(self, result: StudentResult) -> StudentResult:
        endpoint = "/results"
        body = result.model_dump(mode="json", by_alias=True)
        data = await self._request("POST", endpoint, json=body)
        return self._parse(StudentResult, data, endpoint) if data else result

    async def publish_results(self, class_id: str, term_id: str) -> Any:
        """Ask the API to publish (and so recompute positions for) a class+term"""
        return await self._request(
            "POST", "/results/publish", json={"classId": class_id, "termId": term_id}
        )

    async def unpublish_results(self, class_id: str, term_id: str) -> Any:
        return await self._request(
            "POST", "/results/unpublish", json={"classId": class_id, "termId": term_id}
        )

    # ---- images --------------------------------------------------------

    def proxy_image_url(self, url: Optional[str]) -> Optional[str]:
        """
        Route an external image through the same-origin proxy

        Relative URLs and data URIs are already safe and returned unchanged.
        """
        if not url:
            return None
        if url.startswith("data:") or not url.lower().startswith(("http://", "https://")):
            return url
        if url.startswith(self.base_url):
            return url
        return f"{self.base_url}{self.image_proxy_path}?url={quote(url, safe='')}"


__all__ = ["DEFAULT_TIMEOUT", "ResultApiClient"]
