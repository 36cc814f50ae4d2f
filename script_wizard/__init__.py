from .config import Config
from .errors import ErrorKind, GenerationError, RefinementBusyError, TransitionError, WizardError
from .models import GenerationResult, QualityScore, ScriptResult, WizardState, WizardStep
from .refinement import RefinementChatEngine
from .scoring import score_result, score_script
from .service import GenerationClient
from .session import SessionStore
from .wizard import WizardController, can_advance

__version__ = "0.1.0"

__all__ = [
    "Config",
    "ErrorKind",
    "GenerationError",
    "RefinementBusyError",
    "TransitionError",
    "WizardError",
    "GenerationResult",
    "QualityScore",
    "ScriptResult",
    "WizardState",
    "WizardStep",
    "RefinementChatEngine",
    "score_result",
    "score_script",
    "GenerationClient",
    "SessionStore",
    "WizardController",
    "can_advance",
]
