from typing import Any

import httpx

from kyc_backend.core.errors import DetectionFailed
from kyc_backend.core.logging import get_logger

logger = get_logger("face-detection")

DETECT_PATH = "/face/v1.0/detect"


def _error_detail(response: httpx.Response) -> Any:
    """Pulls the service's error payload out of a failed response, falling back to the raw text."""
    try:
        body = response.json()
    except ValueError:
        return response.text or None
    if isinstance(body, dict) and "error" in body:
        return body["error"]
    return body


class FaceDetectionClient:
    """
    Client for a hosted face detection API (Azure Face style): the image is passed
    by URL and the service answers with one entry per detected face.
    """

    def __init__(self, http_client: httpx.Client, endpoint: str, subscription_key: str):
        self.http = http_client
        self.endpoint = endpoint.rstrip("/")
        self.subscription_key = subscription_key

    def detect(self, image_url: str) -> int:
        """Returns how many faces the service found in the image at `image_url`."""
        if not self.endpoint:
            raise DetectionFailed("Face detection endpoint is not configured")

        try:
            response = self.http.post(
                f"{self.endpoint}{DETECT_PATH}",
                params={"returnFaceId": "false"},
                headers={"Ocp-Apim-Subscription-Key": self.subscription_key},
                json={"url": image_url},
            )
        except httpx.HTTPError as e:
            logger.error(f"Face detection request failed: {e}", exc_info=True)
            raise DetectionFailed(f"Face detection request failed: {e}")

        if not response.is_success:
            detail = _error_detail(response)
            logger.error(f"Face detection returned HTTP {response.status_code}: {detail}")
            raise DetectionFailed(f"Face detection returned HTTP {response.status_code}", upstream_detail=detail)

        try:
            faces = response.json()
        except ValueError:
            raise DetectionFailed("Face detection returned a non-JSON body", upstream_detail=response.text)
        if not isinstance(faces, list):
            raise DetectionFailed("Face detection returned an unexpected body", upstream_detail=faces)

        logger.info(f"Face detection found {len(faces)} face(s).")
        return len(faces)
