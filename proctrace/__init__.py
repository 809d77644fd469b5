from proctrace.event import InvalidEventError, ProcessExecution
from proctrace.parser import ParseOptions, parse
from proctrace.tracer import TracerController, TracerState

__all__ = [
    "InvalidEventError",
    "ParseOptions",
    "ProcessExecution",
    "TracerController",
    "TracerState",
    "parse",
]
