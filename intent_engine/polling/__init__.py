# Job polling and retry
from .poller import JobPoller, poll
from .retry import retry_with_backoff, is_retryable_job_error
