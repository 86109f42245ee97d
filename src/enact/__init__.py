"""
Enact - Execution engine for declaratively defined capabilities.

A capability is a versioned, schema-described unit of work made of tasks
wired together by a flow. Enact validates the capability and its inputs,
runs each flow step on a pluggable execution provider (in-process, Docker
or Windmill), then validates the declared outputs.

Example usage:
    $ enact run capability.yaml --input name=Ada
    $ enact exec FormatGreeting --input name=Ada --input language=spanish
    $ enact validate capability.yaml
"""

from enact.config import EnactConfig, initialize
from enact.engine import Engine, ExecutionOptions, RunState
from enact.schema import Capability, ExecutionResult, load_capability

__version__ = "0.1.0"
__author__ = "Enact Contributors"

__all__ = [
    "__version__",
    "__author__",
    "Capability",
    "EnactConfig",
    "Engine",
    "ExecutionOptions",
    "ExecutionResult",
    "RunState",
    "initialize",
    "load_capability",
]
