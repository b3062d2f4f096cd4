"""CVR CLI utility.

This module provides a command-line interface for encrypting and decrypting files using the CVR cypher.
Encrypted files conventionally carry a ".cvr" extension, which is used to derive output names and, in
`auto` mode, to choose between encryption and decryption.
"""

import argparse
import os
import sys
import time
from pathlib import Path
from typing import IO, Callable, cast

from cvr import __version__
from cvr._cvr import CVR
from cvr._errors import CVRError
from cvr._types import _HAS_NUMPY, Mode

EXTENSION = ".cvr"


def _add_common_args(p: argparse.ArgumentParser) -> None:
    """Add common CLI arguments for all subcommands.

    Args:
        p (argparse.ArgumentParser): The argument parser to which the arguments will be added.
    """
    p.add_argument(
        "--infile",
        type=str,
        default="-",
        help="Input file path (default: -, meaning stdin). Use - or omit for stdin. Always binary mode.",
    )
    p.add_argument(
        "--outfile",
        type=str,
        default=None,
        help=f"Output file path. Use - for stdout. If omitted, it is derived from --infile by adding or "
        f"removing the '{EXTENSION}' extension, or is stdout when reading from stdin.",
    )
    password = p.add_mutually_exclusive_group()
    password.add_argument("--password", type=str, help="The password.")
    password.add_argument(
        "--password-file", type=Path, help="Path to file containing the password (raw bytes)."
    )
    p.add_argument(
        "--buffer-size",
        type=int,
        default=1024 * 1024,
        help="Buffer size in bytes for reading and writing blocks (default: 1048576, i.e., 1MB).",
    )
    p.add_argument(
        "--vectorise",
        action=argparse.BooleanOptionalAction,
        default=_HAS_NUMPY,
        help="Use NumPy while seeding the key stream (default: True if NumPy is installed).",
    )
    p.add_argument(
        "--verbosity",
        choices=["info", "warning", "error", "none"],
        default="warning",
        help="Verbosity level: info, warning (default), error, none. "
        "Info shows all messages, including progress information.",
    )


def _add_suffix_arg(p: argparse.ArgumentParser) -> None:
    """Add the --suffix argument used to name encrypted files.

    Args:
        p (argparse.ArgumentParser): The argument parser to which the argument will be added.
    """
    p.add_argument(
        "--suffix",
        type=str,
        default=None,
        help="Identifier inserted as '-SUFFIX' before the first '.' of a derived output file name.",
    )


def _vprint(msg: str, level: str, verbosity: str) -> None:
    """Conditionally print a message to stderr based on the verbosity level.

    Args:
        msg (str): The message to print.
        level (str): The message level: 'info', 'warning', or 'error'.
        verbosity (str): The verbosity setting: 'info', 'warning', 'error', or 'none'.
    """
    levels: dict[str, int] = {"info": 0, "warning": 1, "error": 2, "none": 3}
    msg_level = levels[level]
    user_level = levels[verbosity]
    if msg_level >= user_level:
        print(msg, file=sys.stderr)


def _open_file(file: str | None, mode: str, std_stream: IO[bytes] | object) -> IO[bytes]:
    """Opens a file in the specified binary mode or returns the provided standard stream if file is '-' or None.

    Args:
        file (str | None): Path to the file or '-' for the standard stream.
        mode (str): File open mode, e.g., 'rb' or 'wb'.
        std_stream (object): Standard stream to use if file is '-' or None.

    Returns:
        IO[bytes]: A file-like object opened for binary reading or writing.
    """
    if file == "-" or file is None:
        # Return the binary buffer of a stream if available, else the stream itself.
        return getattr(std_stream, "buffer", cast(IO[bytes], std_stream))
    else:
        return open(file, mode)


def _resolve_mode(command: str, infile: str) -> Mode:
    """Choose the operation for a subcommand; `auto` decrypts files with the CVR extension.

    Args:
        command (str): The subcommand: 'encode', 'decode' or 'auto'.
        infile (str): The input file path.

    Returns:
        Literal["encode", "decode"]: The operation mode.
    """
    if command == "auto":
        return "decode" if infile.endswith(EXTENSION) else "encode"
    return cast(Mode, command)


def _derive_output_path(infile: str, mode: Mode, suffix: str | None = None) -> Path:
    """Derive the output path from the input path.

    Encryption appends the CVR extension, after inserting '-suffix' before the first '.' of the file
    name when a suffix is given. Decryption removes the CVR extension.

    Args:
        infile (str): The input file path.
        mode (Literal["encode", "decode"]): The operation mode.
        suffix (str, optional): Identifier added to the name of encrypted files. Defaults to None.

    Returns:
        Path: The output path.

    Raises:
        ValueError: If decrypting a file whose name does not end with the CVR extension.
    """
    path = Path(infile)
    name = path.name
    if mode == "decode":
        if not name.endswith(EXTENSION) or name == EXTENSION:
            raise ValueError(f"cannot derive an output name: {name} does not end with '{EXTENSION}'.")
        return path.with_name(name[: -len(EXTENSION)])

    if suffix:
        position = name.find(".")
        if position == -1:
            name = f"{name}-{suffix}"
        else:
            name = f"{name[:position]}-{suffix}{name[position:]}"
    return path.with_name(name + EXTENSION)


def main(args: list[str] | None = None) -> None:
    """Entry point for the CVR CLI utility.

    Parses arguments, reads the password, derives file names and dispatches encode/decode.

    Args:
        args (list or None): Optional list of arguments to parse instead of sys.argv.
    """
    parser = argparse.ArgumentParser(description="CVR CLI utility for encryption and decryption.")
    subparsers = parser.add_subparsers(
        dest="command", required=True, help="Operation mode: encode, decode or auto."
    )

    # Encode subcommand
    enc = subparsers.add_parser("encode", help="Encrypt a file.")
    _add_common_args(enc)
    _add_suffix_arg(enc)

    # Decode subcommand
    dec = subparsers.add_parser("decode", help="Decrypt a file.")
    _add_common_args(dec)

    # Auto subcommand
    auto = subparsers.add_parser(
        "auto", help=f"Decrypt files ending with '{EXTENSION}', encrypt any other file."
    )
    _add_common_args(auto)
    _add_suffix_arg(auto)

    parsed_args = parser.parse_args(args)
    verbosity = parsed_args.verbosity

    infile = parsed_args.infile
    outfile = parsed_args.outfile
    command = parsed_args.command

    # Choose the operation
    if command == "auto" and infile in (None, "-"):
        _vprint(
            "Error: --infile must be a file path in auto mode. "
            "Use the encode or decode subcommands to process stdin.",
            "error",
            verbosity,
        )
        sys.exit(1)
    mode = _resolve_mode(command, infile)

    if parsed_args.buffer_size <= 0:
        _vprint("Error: --buffer-size must be a positive integer.", "error", verbosity)
        sys.exit(1)

    # Derive the output file
    if outfile is None:
        if infile in (None, "-"):
            outfile = "-"
        else:
            try:
                outfile = str(_derive_output_path(infile, mode, getattr(parsed_args, "suffix", None)))
            except ValueError as e:
                _vprint(f"Error: {e} Provide the output file with --outfile.", "error", verbosity)
                sys.exit(1)

    # Check if output file exists
    if outfile != "-":
        out_path = Path(outfile)
        if out_path.exists():
            _vprint(
                f"Error: {out_path.resolve()} already exists. Refusing to overwrite. "
                "Use a different output file or remove the existing file.",
                "error",
                verbosity,
            )
            sys.exit(1)
    elif sys.stdout.isatty():
        _vprint(
            "Warning: Writing binary data to a terminal may corrupt your session. "
            "Redirect output to a file or use --outfile.",
            "warning",
            verbosity,
        )

    # Handle password
    if parsed_args.password is not None:
        password = os.fsencode(parsed_args.password)
    elif parsed_args.password_file is not None:
        try:
            password = parsed_args.password_file.read_bytes()
        except OSError as e:
            _vprint(f"Error: Cannot read the password file: {e}", "error", verbosity)
            sys.exit(1)
    else:
        _vprint(
            "Error: --password or --password-file must be specified. "
            "Provide the password used for encoding when decoding.",
            "error",
            verbosity,
        )
        sys.exit(1)

    if not password:
        _vprint("Error: The password must not be empty.", "error", verbosity)
        sys.exit(1)

    # Print version and platform information
    _vprint(
        f"CVR CLI v{__version__} (numpy: {_HAS_NUMPY}) | "
        f"Python v{sys.version_info.major}.{sys.version_info.minor} | Platform: {sys.platform}",
        "info",
        verbosity,
    )

    # Initialise the CVR object
    try:
        cypher = CVR(password, vectorise=parsed_args.vectorise)
    except ValueError as e:
        _vprint(f"Error: {e}", "error", verbosity)
        sys.exit(1)

    # Define progress callback if verbosity is "info"
    progress_callback: Callable[[int, int], None] | None
    if verbosity == "info":

        def progress_callback(processed: int, total: int) -> None:
            percent = 100.0 * processed / total if total > 0 else 0.0
            print(f"\rProgress: {percent:.2f}%", end="", file=sys.stderr, flush=True)
            if processed >= total:
                print("\rProgress: 100.00%", end="", file=sys.stderr, flush=True)
                print("", file=sys.stderr, flush=True)

    else:
        progress_callback = None

    # Open input/output (binary mode, handle stdin/stdout)
    try:
        with (
            _open_file(infile, "rb", sys.stdin) as fin,
            _open_file(outfile, "wb", sys.stdout) as fout,
        ):
            start_time = time.perf_counter()
            cypher.process_file(
                mode,
                fin,
                fout,
                buffer_size=parsed_args.buffer_size,
                progress_callback=progress_callback,
            )
            # Print elapsed time
            _vprint(
                f"The '{mode}' step took {time.perf_counter() - start_time:.3f} seconds.",
                "info",
                verbosity,
            )
    except CVRError as e:
        _vprint(f"Error: {e}", "error", verbosity)
        sys.exit(1)
    except (BrokenPipeError, OSError) as e:
        _vprint(f"Error: I/O error during read/write: {e}", "error", verbosity)
        sys.exit(1)
    except KeyboardInterrupt:
        _vprint("\nOperation cancelled by user.", "error", verbosity)
        sys.exit(130)


if __name__ == "__main__":
    main()
