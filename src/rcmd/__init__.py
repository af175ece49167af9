"""rcmd: Run one command on many SSH hosts and merge their output."""

from .config import Params, ParamError, ParamErrorKind, parse_params, read_key_file
from .executor import OutputChannel, SessionWorker, dispatch, format_label, load_credential
from .multiplexer import Multiplexer

__version__ = "0.1.0"

__all__ = [
    "Params",
    "ParamError",
    "ParamErrorKind",
    "parse_params",
    "read_key_file",
    "OutputChannel",
    "SessionWorker",
    "dispatch",
    "format_label",
    "load_credential",
    "Multiplexer",
]
