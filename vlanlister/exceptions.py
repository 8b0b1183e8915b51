class VlanListerError(Exception):
    pass


class FatalSetupError(VlanListerError):
    # Required configuration (host, outfile) is missing.
    pass


class FatalPipelineError(VlanListerError):
    # The device list could not be fetched; nothing else can run.
    pass


class RecoverableDeviceError(VlanListerError):
    def __init__(self, message: str, ip_address: str = "") -> None:
        super().__init__(message)
        self.ip_address = ip_address


class DecodeError(RecoverableDeviceError):
    def __init__(self, message: str, payload: bytes = b"", ip_address: str = "") -> None:
        super().__init__(message, ip_address)
        self.payload = payload


class NormalizationError(VlanListerError):
    def __init__(self, message: str, token: str = "") -> None:
        super().__init__(message)
        self.token = token


class WriterError(VlanListerError):
    pass


class UnsupportedSinkError(WriterError):
    def __init__(self, descriptor: str) -> None:
        super().__init__(f"Could not determine file type for <{descriptor}>")
        self.descriptor = descriptor


class CompressionError(WriterError):
    def __init__(self, message: str, rows_written: int = 0) -> None:
        super().__init__(message)
        self.rows_written = rows_written
