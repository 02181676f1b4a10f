"""Client-side dashboard views built on ApiClient and TTLCache."""

import logging
import threading

from esg_portal.api_client import ApiError, AuthenticationError, ValidationError
from esg_portal.cache import METRICS_TTL, SCORES_TTL, TTLCache

logger = logging.getLogger(__name__)


def change_icon(change):
    """Trend arrow for a period-over-period change."""
    if change is None or change == 0:
        return "flat"
    return "up" if change > 0 else "down"


class _View:
    """Holds the last good payload of one dashboard screen."""

    ttl = METRICS_TTL
    prefix = ""

    def __init__(self, client, company_id, period=None, cache=None):
        self.client = client
        self.company_id = company_id
        self.period = period
        self.cache = cache if cache is not None else TTLCache()
        self.data = None
        self.error = None

    @property
    def cache_key(self):
        return f"{self.prefix}:{self.company_id}:{self.period or 'latest'}"

    def _fetch(self):
        raise NotImplementedError

    def refresh(self, force=False):
        """Reload the view. Returns True on success.

        A failure keeps the previous data and records the message; an
        authentication failure drops the data as well.
        """
        if force:
            self.cache.invalidate(self.cache_key)
        try:
            self.data = self.cache.cached_fetch(self.cache_key, self.ttl, self._fetch)
        except AuthenticationError as e:
            self.data = None
            self.error = e.message
            return False
        except ApiError as e:
            logger.warning(f"{type(self).__name__} refresh failed for company {self.company_id}: {e.message}")
            self.error = e.message
            return False
        self.error = None
        return True


class ScorecardView(_View):
    ttl = SCORES_TTL
    prefix = "scores"

    def _fetch(self):
        return self.client.scorecard(self.company_id, self.period)

    @property
    def scorecard(self):
        return (self.data or {}).get("scorecard")

    @property
    def has_score(self):
        return self.scorecard is not None

    @property
    def trends(self):
        return (self.data or {}).get("trends") or []

    def trend_icon(self):
        previous = (self.scorecard or {}).get("previousPeriod")
        return change_icon(previous["change"] if previous else None)

    def pillar_icons(self):
        previous = (self.scorecard or {}).get("previousPeriod") or {}
        return {
            "environmental": change_icon(previous.get("environmentalChange")),
            "social": change_icon(previous.get("socialChange")),
            "governance": change_icon(previous.get("governanceChange")),
        }


class ComplianceView(_View):
    prefix = "compliance"

    def _fetch(self):
        return self.client.compliance_dashboard(self.company_id, self.period)

    @property
    def has_data(self):
        return bool((self.data or {}).get("hasData"))

    @property
    def next_steps(self):
        return (self.data or {}).get("nextSteps") or []


class TaskBoard(_View):
    prefix = "tasks"

    def __init__(self, client, company_id, period=None, cache=None):
        super().__init__(client, company_id, period, cache)
        self._in_flight = set()
        self._lock = threading.Lock()

    def _fetch(self):
        return self.client.tasks_dashboard(self.company_id, self.period)

    @property
    def tasks(self):
        return (self.data or {}).get("taskTable") or []

    def is_busy(self, task_id):
        return task_id in self._in_flight

    def complete(self, task_id):
        """Mark a task completed. Returns True when the server accepted it.

        Repeated calls for a task already being completed are ignored. A
        validation error leaves the board as it is; success reloads it.
        """
        with self._lock:
            if task_id in self._in_flight:
                logger.debug(f"Ignoring duplicate completion of {task_id}")
                return False
            self._in_flight.add(task_id)
        try:
            self.client.update_task_status(task_id, "Completed", self.period)
        except ValidationError as e:
            self.error = e.message
            return False
        except AuthenticationError as e:
            self.data = None
            self.error = e.message
            return False
        except ApiError as e:
            self.error = e.message
            return False
        finally:
            with self._lock:
                self._in_flight.discard(task_id)

        self.cache.invalidate_prefix(f"tasks:{self.company_id}:")
        self.refresh()
        return True
