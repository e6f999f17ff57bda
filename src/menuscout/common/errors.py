"""Exception hierarchy for menu scraping and job handling."""
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from menuscout.common.schemas import ScrapeResult


class MenuScoutError(Exception):
    """Base class for all menuscout errors."""


class ScrapeError(MenuScoutError):
    """A failure inside the navigation/extraction pipeline."""


class NavigationError(ScrapeError):
    """A required input or control could not be found on the page."""


class RestaurantNotFoundError(ScrapeError):
    """No restaurant detail link exists after searching."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Could not find restaurant {name!r} in search results")


class ExtractionEmptyResult(ScrapeError):
    """The pipeline finished but found no valid menu items.

    This is a successful outcome with an empty list; the exception only
    exists so callers can tell it apart from a navigation failure.
    """

    def __init__(self, result: "ScrapeResult", detail: Optional[str] = None):
        self.result = result
        super().__init__(detail or f"No menu items found for {result.restaurant!r}")


class JobNotFoundError(MenuScoutError, LookupError):
    """No job exists with the requested id."""

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Job {job_id} not found")


class InvalidJobPayload(MenuScoutError, ValueError):
    """A submission was rejected before a job was created."""
