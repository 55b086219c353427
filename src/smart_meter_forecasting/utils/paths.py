# stdlib
from pathlib import Path
from datetime import datetime
# projectlib
from smart_meter_forecasting.utils.typing import Address, OpenMode

SUPPORTED_EXTENSIONS = (".csv", ".parquet")

def validate_address(
    address: Address,
    *, 
    extension: str = ".csv", 
    mode: OpenMode = 'r',
    mkdir: bool = False,
) -> Path:
    """
    Validate and normalize a file or directory path.

    The input is converted to a ``pathlib.Path``, directories are
    optionally created, and file existence is checked according to the
    intended I/O mode. Files already carrying one of
    ``SUPPORTED_EXTENSIONS`` keep their suffix; any other file path has
    its suffix replaced by ``extension``.

    Parameters
    ----------
    address : Address
        File or directory path as a string or ``Path``.
    extension : str, default ".csv"
        Extension enforced on file paths without a supported suffix.
    mode : OpenMode, default "r"
        Intended file access mode:
        - ``"r"``: path must exist if it refers to a file
        - ``"w"``: existing files will be renamed to avoid overwrite
    mkdir : bool, default False
        If True, treat ``address`` as a directory and create it
        (including parents) if it does not already exist.

    Returns
    -------
    pathlib.Path
        Validated and normalized path.

    Raises
    ------
    NotADirectoryError
        If the parent directory does not exist.
    FileNotFoundError
        If ``mode="r"`` and the file does not exist.
    """
    address = Path(address)
    if mkdir:
        address.mkdir(parents=True, exist_ok=True)
    if address.is_dir():
        return address
    if not address.parent.is_dir():
        msg = (
            f"Address path {address.parent}"
            " does not exist or is not a directory."
        )
        raise NotADirectoryError(msg)
    if address.suffix not in SUPPORTED_EXTENSIONS:
        address = address.with_suffix(extension)
    if mode == "r" and not address.is_file():
        msg = f"{address} is not a file or does not exist."
        raise FileNotFoundError(msg)
    # Writing: never overwrite an earlier result file
    if mode == "w" and address.exists():
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        address = address.with_name(
            f"{address.stem}_{timestamp}{address.suffix}"
        )
    
    return address
