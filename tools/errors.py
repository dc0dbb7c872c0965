class DeploymentError(Exception):
    """Base class for every failure that should stop a tool with a non-zero exit code."""


class PrerequisiteMissing(DeploymentError):
    pass


class DetectionError(DeploymentError):
    pass


class ValidationError(DeploymentError):
    def __init__(self, value, name="cluster", reason="invalid domain format"):
        self.value = value
        self.name = name
        super().__init__(f"{reason} for {name} domain: {value!r}")


class MissingFileError(DeploymentError):
    def __init__(self, path):
        self.path = path
        super().__init__(f"File not found: {path}")


class SubstitutionIncompleteError(DeploymentError):
    def __init__(self, path, token, remaining):
        self.path = path
        self.token = token
        self.remaining = remaining
        super().__init__(f"{remaining} occurrence(s) of {token} left in {path} after substitution")


class CertificateExtractionError(DeploymentError):
    pass


class DeploymentTimeout(DeploymentError):
    pass
