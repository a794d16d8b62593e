"""
Error taxonomy for the job pipeline.

The orchestrator decides between retry bookkeeping and a direct terminal
transition from the class of the exception it catches.
"""


class WorkerError(Exception):
    """Base class for errors raised by the pipeline"""

    retryable = True

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class FatalJobError(WorkerError):
    """A broken contract with the record store or the assessor.

    A missing job cannot be updated at all. A reply without scores still goes
    through retry bookkeeping, since the next completion may honour the format.
    """


class JobNotFoundError(FatalJobError):
    """The job record is missing, so there is nothing to update"""

    retryable = False


class AssessmentContractError(FatalJobError):
    """The assessor answered without the required `scores` object"""


class ProcessingError(WorkerError):
    """Recoverable failure; the job is requeued while budget remains"""


class AttemptNotFoundError(ProcessingError):
    pass


class VideoValidationError(ProcessingError):
    pass


class TranscriptionError(ProcessingError):
    pass


class AssessmentError(ProcessingError):
    pass


class NonRetryableJobError(WorkerError):
    """Input that will never succeed; the job fails without consuming a retry"""

    retryable = False


class FileTooLargeError(NonRetryableJobError):
    pass


class DispatchError(Exception):
    """Raised when a job id cannot be handed to the worker pool"""


class DispatcherBusyError(DispatchError):
    pass


class JobAlreadyDispatchedError(DispatchError):
    pass
