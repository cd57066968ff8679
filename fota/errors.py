# SPDX-License-Identifier: MIT
# Copyright (c) 2025 nanosamfw contributors
"""
FOTA package error definitions.

This module defines the exceptions used across the FOTA package. They are
raised internally and reported to callers as structured outcomes by
fota.resolver, never as uncaught faults.

Exceptions:
    FOTAError: Base class for FOTA-related errors.
    TransportFailure: Network or parse-layer fault while fetching a manifest.
    VendorError: Explicit <Error> payload returned by the service.
    MalformedManifest: Manifest could not be parsed or lacks a required field.
    NoFirmwareFound: No firmware published for the model/region.
    AccessDenied: The manifest status reports AccessDenied (usually an invalid CSC).
    NoTestFirmwareDisclosed: The test manifest discloses no fingerprints.
    DecryptionExhausted: Fingerprints were disclosed but none was reconstructed.
    ReconstructionCancelled: A reconstruction was abandoned by its caller.
"""


class FOTAError(Exception):
    """Base class for FOTA-related errors."""


class TransportFailure(FOTAError):
    """Network or parse-layer fault while fetching a manifest."""


class VendorError(TransportFailure):
    """Error payload returned by the FOTA service.

    Args:
        code: Vendor error code from the <Code> element.
        message: Vendor error text from the <Message> element.
    """

    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(f"Code: {code}, Message: {message}")


class MalformedManifest(TransportFailure):
    """Raised when a manifest cannot be parsed.

    Args:
        field: The XML field that failed to parse.
        model: Optional device model for context.
        region: Optional region code for context.
    """

    def __init__(self, field: str = "", model: str = "", region: str = ""):
        msg = "Failed to parse FOTA manifest"
        if field:
            msg += f": missing or invalid '{field}' field"
        if model or region:
            msg += f" for {model}/{region}"
        super().__init__(msg)


class NoFirmwareFound(FOTAError):
    """No firmware available for the specified model/region."""

    def __init__(self, model: str = "", region: str = "", msg: str = "No latest firmware available"):
        self.model = model
        self.region = region
        if model or region:
            msg += f" for {model}/{region}"
        super().__init__(msg)


class AccessDenied(NoFirmwareFound):
    """Manifest reports AccessDenied; the CSC is not valid for this model."""

    def __init__(self, model: str = "", region: str = ""):
        super().__init__(model, region, "Access denied, check the CSC")


class NoTestFirmwareDisclosed(NoFirmwareFound):
    """The test manifest carries no disclosed fingerprints."""

    def __init__(self, model: str = "", region: str = ""):
        super().__init__(model, region, "No test firmware found")


class DecryptionExhausted(NoFirmwareFound):
    """The bounded search finished without reconstructing any fingerprint.

    Args:
        model: Device model.
        region: Region code.
        disclosed_count: Number of distinct disclosed fingerprints.
        reference_version: Reference version used for calibration, may be empty.
    """

    def __init__(
        self, model: str = "", region: str = "", disclosed_count: int = 0, reference_version: str = ""
    ):
        self.disclosed_count = disclosed_count
        self.reference_version = reference_version
        super().__init__(model, region, "Could not decrypt any test firmware version")

    @property
    def diagnostic(self) -> str:
        """Summary shown instead of the raw test manifest."""
        return (
            f"Found {self.disclosed_count} encrypted firmware entries but could not decrypt any.\n"
            f"Model: {self.model}, Region: {self.region}\n"
            f"Reference version: {self.reference_version or 'not available'}"
        )


class ReconstructionCancelled(FOTAError):
    """A running reconstruction was cancelled by its caller."""

    def __init__(self):
        super().__init__("Test firmware reconstruction cancelled")
