from typing import Optional


class DeploymentError(Exception):
    """Base error for service lifecycle operations."""


class ServiceNotFoundError(DeploymentError):
    def __init__(self, name: str, version: str):
        self.name = name
        self.version = version
        super().__init__(f"Service not found: {name}/{version}")


class ServiceAlreadyExistsError(DeploymentError):
    def __init__(self, name: str, version: str):
        self.name = name
        self.version = version
        super().__init__(f"Service already exists: {name}/{version}")


class RevisionConflictError(DeploymentError):
    def __init__(self, name: str, version: str, expected: Optional[int], actual: Optional[int] = None):
        self.name = name
        self.version = version
        self.expected = expected
        self.actual = actual
        msg = f"Revision conflict on {name}/{version}: expected {expected}"
        if actual is not None:
            msg += f", current is {actual}"
        super().__init__(msg)


class AuthenticationError(DeploymentError):
    pass
