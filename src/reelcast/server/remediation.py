"""User-facing messages for fallbacks and terminal playback failures."""

from reelcast.server.sources.base import ProviderKind, RenderMode, SourceDescriptor

FALLBACK_TITLE = "Trying an alternate method"
FALLBACK_AFTER_ERROR = "The direct method failed. Trying to load the video through the embedded player..."
FALLBACK_AFTER_TIMEOUT = "Loading the video through the embedded player..."
FALLBACK_TO_NATIVE = "The embedded player failed. Trying to load the video directly..."

DRIVE_ERROR_TITLE = "Problem with Google Drive video"
DRIVE_GENERIC = "Check that the link is public and accessible."

GENERIC_ERROR_TITLE = "Error loading video"
GENERIC_ERROR = "The video could not be loaded. Check the link and try again."


def drive_instructions(file_id: str) -> str:
    """Steps for fixing sharing on a Drive file that failed to play."""
    return (
        "For this video to play correctly:\n"
        "\n"
        '1. Make sure the file is shared as "Anyone with the link can view"\n'
        f"2. The link should look like: https://drive.google.com/file/d/{file_id}/view\n"
        "3. If it still does not work, open the link directly in your browser "
        "to check that it is accessible\n"
        "\n"
        "If the problem persists, contact the system administrator."
    )


def remediation_title(descriptor: SourceDescriptor) -> str:
    if descriptor.kind == ProviderKind.GOOGLE_DRIVE:
        return DRIVE_ERROR_TITLE
    return GENERIC_ERROR_TITLE


def remediation_message(descriptor: SourceDescriptor) -> str:
    """Text shown once every candidate address has failed."""
    if descriptor.kind == ProviderKind.GOOGLE_DRIVE:
        if descriptor.provider_id:
            return drive_instructions(descriptor.provider_id)
        return DRIVE_GENERIC
    return GENERIC_ERROR


def fallback_message(next_mode: RenderMode, timed_out: bool) -> str:
    """Notice text for switching to the next candidate."""
    if next_mode == RenderMode.NATIVE:
        return FALLBACK_TO_NATIVE
    if timed_out:
        return FALLBACK_AFTER_TIMEOUT
    return FALLBACK_AFTER_ERROR
