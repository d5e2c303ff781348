class RAppImageError(Exception):
    exit_code: int = 1

    def __init__(self, message: str):
        super().__init__(message)

class ConfigError(RAppImageError):
    pass


class DependencyError(RAppImageError):
    pass


class DownloadError(RAppImageError):
    pass

class BuildError(RAppImageError):
    pass


class BundleError(RAppImageError):
    pass


class IconError(BundleError):
    pass

class PackagingError(RAppImageError):
    pass


class BuildInterrupted(RAppImageError):
    exit_code = 130
