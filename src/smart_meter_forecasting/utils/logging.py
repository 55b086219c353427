# stdlib
from pathlib import Path
from datetime import datetime
from typing import Optional
from types import TracebackType
# projectlib
from smart_meter_forecasting.utils.paths import validate_address
from smart_meter_forecasting.utils.typing import Verbosity, Address

class Logger(object):
    """
    Callable logger with verbosity filtering and optional file output.

    Every forecasting component owns one of these. Messages tagged with
    a verbosity above the configured threshold are discarded; the rest
    are printed to stdout or appended to ``log.txt`` inside
    ``log_dir``. An optional ``name`` is prefixed to each message so
    interleaved output from the orchestrator and the strategies stays
    readable.
    """

    def __init__(
        self,
        verbose: Verbosity = 0,
        log_dir: Optional[Address] = None,
        write_log: bool = False,
        name: Optional[str] = None,
    ) -> None:
        """
        Initialize the logger.

        Parameters
        ----------
        verbose : Verbosity, default 0
            Verbosity threshold. Messages with a verbosity level less
            than or equal to this value will be emitted.
        log_dir : Address, optional
            Directory in which ``log.txt`` is written when
            ``write_log`` is True. Defaults to the working directory.
        write_log : bool, default False
            If True, messages are appended to the log file instead of
            being printed.
        name : str, optional
            Component name prefixed to every message.
        """
        self.verbose = verbose
        self.name = name
        self.write_log = write_log
        # Only resolve the log file when it is going to be written
        self.log_path: Optional[Path] = None
        if write_log:
            directory = Path.cwd() if log_dir is None else log_dir
            self.log_path = validate_address(directory) / "log.txt"

    def __call__(self, msg: str, verbosity: int = 0) -> None:
        """
        Emit ``msg`` if ``self.verbose >= verbosity``.

        Parameters
        ----------
        msg : str
            Message to be logged.
        verbosity : int, default 0
            Verbosity level associated with the message.
        """
        if self.verbose >= verbosity:
            formatted = self._format(msg)
            if self.write_log:
                self.write(formatted)
            else:
                print(formatted)

    def child(self, name: str) -> "Logger":
        """Return a logger sharing this one's settings under a new name."""
        child = Logger(verbose=self.verbose, name=name)
        child.write_log = self.write_log
        child.log_path = self.log_path
        return child

    def write(self, msg: str) -> None:
        """Append a formatted message to the log file."""
        if self.log_path is None:
            raise RuntimeError("Logger was not configured to write a log.")
        with open(self.log_path, "a", encoding="utf-8") as file:
            file.write(msg + "\n")
    
    def _format(self, msg: str) -> str:
        ts = datetime.now().isoformat(timespec="seconds")
        if self.name:
            return f"[{ts}] [{self.name}] {msg}"
        return f"[{ts}] {msg}"
    
    def __enter__(self) -> "Logger":
        return self

    def __exit__(
            self, 
            exc_type: Optional[type[BaseException]],
            exc: Optional[BaseException],
            tb: Optional[TracebackType]
        ) -> None:
        pass
