from core.batch import BatchOrchestrator
from core.config import PollerSettings
from core.errors import FetchError, NotFoundError, PollerError, RateLimitedError
from core.limiter import ConcurrencyLimiter
from core.normalizer import clean_version, normalize
from core.poller import ServerPoller
from core.retry import linear_backoff, with_retries
from core.scheduler import Scheduler, SchedulerState
from core.selector import CandidateSelector
from core.service import StatusPollingService
from core.stats import ServerStats, summarize

__all__ = [
    "BatchOrchestrator",
    "CandidateSelector",
    "ConcurrencyLimiter",
    "FetchError",
    "NotFoundError",
    "PollerError",
    "PollerSettings",
    "RateLimitedError",
    "Scheduler",
    "SchedulerState",
    "ServerPoller",
    "ServerStats",
    "StatusPollingService",
    "clean_version",
    "linear_backoff",
    "normalize",
    "summarize",
    "with_retries",
]
