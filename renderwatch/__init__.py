"""renderwatch: lifecycle monitor for external animation render jobs.

Consumes the free-text output stream of a render process (or a structured
result signal when the transport provides one) and derives, exactly once,
whether the job completed with an artifact or failed with a reason.
"""

__version__ = "0.1.0"
__description__ = "Lifecycle monitor for external animation render jobs"

from renderwatch.core.classifier import classify
from renderwatch.core.controller import MonitorController
from renderwatch.core.job_machine import JobMachine

__all__ = ["MonitorController", "JobMachine", "classify", "__version__"]
