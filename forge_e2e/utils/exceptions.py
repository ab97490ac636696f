"""
Exception hierarchy for the Forge E2E deployment workflow

Every failure in the workflow is fatal: the orchestrator never retries and
never continues with partial data. Each class below maps to one failure
category so the CLI can report it with a stable code.
"""

from typing import Any, Dict, Optional


class ErrorCodes:
    """Numeric error codes grouped by category"""
    # Dependencies (1xxx)
    DEPENDENCY_MISSING = 1001
    DEPENDENCY_VERSION_FAILED = 1002

    # Configuration (2xxx)
    CONFIG_FILE_NOT_FOUND = 2001
    CONFIG_VALIDATION_FAILED = 2002
    CONFIG_VALUE_MISSING = 2003

    # External commands (3xxx)
    COMMAND_FAILED = 3001
    COMMAND_NOT_FOUND = 3002

    # Node (4xxx)
    NODE_START_FAILED = 4001
    NODE_QUERY_FAILED = 4002

    # Artifact (5xxx)
    ARTIFACT_NOT_FOUND = 5001
    ARTIFACT_INVALID = 5002
    QUERY_NO_MATCH = 5003
    QUERY_AMBIGUOUS = 5004


class ForgeE2EError(Exception):
    """Base exception for the Forge E2E workflow"""

    default_code = 1000

    def __init__(self, message: str, code: Optional[int] = None, **details: Any):
        self.message = message
        self.code = code if code is not None else self.default_code
        self.details: Dict[str, Any] = {k: v for k, v in details.items() if v is not None}
        super().__init__(message)

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "details": self.details,
        }


class DependencyError(ForgeE2EError):
    """A required command-line tool is not installed"""

    default_code = ErrorCodes.DEPENDENCY_MISSING

    def __init__(self, message: str, tool: str = None, hint: str = None, code: int = None):
        super().__init__(message, code=code, tool=tool, hint=hint)


class ConfigurationError(ForgeE2EError):
    """Configuration file or required environment value is missing or invalid"""

    default_code = ErrorCodes.CONFIG_VALIDATION_FAILED

    def __init__(
        self,
        message: str,
        config_file: str = None,
        field: str = None,
        code: int = None
    ):
        super().__init__(message, code=code, config_file=config_file, field=field)


class CommandError(ForgeE2EError):
    """An external command exited with a non-zero status"""

    default_code = ErrorCodes.COMMAND_FAILED

    def __init__(
        self,
        message: str,
        command: str = None,
        returncode: int = None,
        stderr: str = None,
        code: int = None
    ):
        super().__init__(
            message, code=code, command=command, returncode=returncode, stderr=stderr
        )
        self.returncode = returncode
        self.stderr = stderr


class NodeError(ForgeE2EError):
    """Local node could not be started or the endpoint could not be queried"""

    default_code = ErrorCodes.NODE_START_FAILED

    def __init__(self, message: str, rpc_url: str = None, code: int = None):
        super().__init__(message, code=code, rpc_url=rpc_url)


class ArtifactError(ForgeE2EError):
    """Broadcast artifact is missing or malformed"""

    default_code = ErrorCodes.ARTIFACT_INVALID

    def __init__(self, message: str, path: str = None, code: int = None):
        super().__init__(message, code=code, path=path)


class QueryMatchError(ArtifactError):
    """A lookup expected exactly one record and found zero or several"""

    def __init__(
        self,
        message: str,
        field: str = None,
        value: str = None,
        match_count: int = 0,
        path: str = None
    ):
        code = ErrorCodes.QUERY_NO_MATCH if match_count == 0 else ErrorCodes.QUERY_AMBIGUOUS
        super().__init__(message, path=path, code=code)
        self.details.update({"field": field, "value": value, "match_count": match_count})
        self.match_count = match_count
