"""Base exception shared by every FinTrack error."""

from typing import Optional


class FinTrackError(Exception):
    """
    Base exception for FinTrack.

    user_message is what the UI shows in a toast; str(exc) keeps the
    technical detail for logs.
    """

    user_message = "Something went wrong"

    def __init__(self, message: str = "", user_message: Optional[str] = None):
        super().__init__(message or self.user_message)
        if user_message is not None:
            self.user_message = user_message
