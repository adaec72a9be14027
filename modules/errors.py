from __future__ import annotations


class PreviewError(RuntimeError):
    code = "internal"


class InputError(PreviewError):
    code = "invalid_input"


class UpstreamCaptureError(PreviewError):
    code = "upstream_capture"


class PayloadTooLargeError(PreviewError):
    code = "payload_too_large"


class UpstreamTransformError(PreviewError):
    code = "upstream_transform"


class StorageError(PreviewError):
    code = "storage"
