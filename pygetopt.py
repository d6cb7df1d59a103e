"""
pygetopt.py
POSIX/GNU style command-line option parsing.

A Parser is stepped one option at a time with getopt(); it consumes its
private copy of the arguments in place, so whatever is left in args() once
getopt() returns END are the positional arguments.
"""
import sys
from typing import Dict, Iterable, Iterator, List, NamedTuple, Optional, Tuple, Union

from loguru import logger

logger.disable(__name__)


class OptionException(Exception):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self):
        return self.message

class OptionSpecException(OptionException):
    pass

class OptionParseException(OptionException):
    def __init__(self, message: str, option: str):
        super().__init__(message)
        self.option = option

class OptionExistsError(OptionSpecException):
    def __init__(self, option: str):
        super().__init__(f"name conflicts with existing option '{option}'")
        self.option = option

class MissingOptionNameError(OptionSpecException):
    def __init__(self):
        super().__init__("short and long names are both blank")

class InvalidOptionFormatError(OptionSpecException):
    def __init__(self, format: str):
        super().__init__(f"invalid option format '{format}'")

class OptionNotExistsException(OptionParseException):
    def __init__(self, option: str):
        super().__init__(f"unrecognized option '{option}'", option)

class MissingArgumentException(OptionParseException):
    def __init__(self, option: str):
        super().__init__(f"expected argument to '{option}'", option)

class OptionNotHasArgumentException(OptionParseException):
    def __init__(self, option: str):
        super().__init__(f"unexpected argument to '{option}'", option)


class Option(NamedTuple):
    name: str
    arg: str


class _End:
    def __repr__(self):
        return "END"

    def __bool__(self):
        return False

    def __reduce__(self):
        return "END"

# Returned by Parser.getopt() once only positional arguments are left.
END = _End()


def is_option(arg: str) -> bool:
    """True for anything that looks like an option, including "--" itself."""
    return len(arg) > 1 and arg[0] == "-"


class OptionSpec:
    def __init__(self, short: Optional[str], long: Optional[str], has_arg: bool):
        self.short = short
        self.long = long
        self.has_arg = has_arg

    @property
    def name(self) -> str:
        # long name wins when both are given
        return self.long if self.long else self.short

    def __repr__(self):
        return f"OptionSpec(short={self.short!r}, long={self.long!r}, has_arg={self.has_arg})"


class Parser:
    """Stateful parser for a list of command-line arguments.

    Parsers share no state, so several may run at once (even over the same
    input), but a single Parser must not be used from several threads
    without outside locking.

    With reorder enabled the parser behaves like GNU getopt: options that
    follow positional arguments are still found, and are removed from the
    input ahead of the positional arguments they followed. The relative order
    of the positional arguments is kept, and "--" still ends option parsing.
    """

    def __init__(self, reorder: bool = False):
        self._reorder = reorder
        self._input: List[str] = []
        self._opts: List[OptionSpec] = []
        self._short: Dict[str, OptionSpec] = {}
        self._long: Dict[str, OptionSpec] = {}

    def flag(self, short: Optional[str] = None, long: Optional[str] = None) -> None:
        """Register an option that takes no argument."""
        self._add_opt(short, long, False)

    def option(self, short: Optional[str] = None, long: Optional[str] = None) -> None:
        """Register an option that requires an argument."""
        self._add_opt(short, long, True)

    def _add_opt(self, short: Optional[str], long: Optional[str], has_arg: bool) -> None:
        if not short and not long:
            raise MissingOptionNameError()
        if short and (len(short) != 1 or short == "-"):
            raise InvalidOptionFormatError(short)
        if long and "=" in long:
            raise InvalidOptionFormatError(long)
        if short and short in self._short:
            raise OptionExistsError(f"-{short}")
        if long and long in self._long:
            raise OptionExistsError(f"--{long}")

        spec = OptionSpec(short or None, long or None, has_arg)
        self._opts.append(spec)
        if spec.short:
            self._short[spec.short] = spec
        if spec.long:
            self._long[spec.long] = spec
        logger.debug("getopt.register short={} long={} has_arg={}", spec.short, spec.long, has_arg)

    @property
    def options(self) -> Tuple[OptionSpec, ...]:
        return tuple(self._opts)

    @property
    def reorder(self) -> bool:
        return self._reorder

    def reorder_input(self, enabled: bool) -> None:
        self._reorder = enabled

    def consume_args(self) -> None:
        self.consume_slice(sys.argv[1:])

    def consume_slice(self, args: Iterable[str]) -> None:
        """Append args to the arguments still to be parsed.

        The parser keeps its own copy; changing args afterwards has no effect.
        """
        if isinstance(args, str):
            raise TypeError("consume_slice expects a sequence of arguments, not a single string")
        args = list(args)
        self._input.extend(args)
        logger.debug("getopt.consume count={} remaining={}", len(args), len(self._input))

    def args(self) -> List[str]:
        """The arguments left to parse, as a live list.

        Once getopt() has returned END these are the positional arguments.
        """
        return self._input

    def getopt(self) -> Union[Option, _End]:
        """Parse the next option.

        Returns an Option whose name is the long name when there is one and
        the short character otherwise, and whose arg is "" for flags. Returns
        END when no options are left. Raises an OptionParseException for an
        unknown option or a missing/unexpected argument, in which case the
        remaining arguments are left untouched.
        """
        if not self._input:
            logger.debug("getopt.end reason=empty")
            return END

        idx = self._find_option()
        if idx is None:
            logger.debug("getopt.end reason=positional remaining={}", len(self._input))
            return END
        opt = self._input[idx]

        if opt == "--":
            # not an option, only a marker that no more options follow
            del self._input[idx]
            logger.debug("getopt.end reason=terminator remaining={}", len(self._input))
            return END

        if opt[1] == "-":
            result = self._parse_long(opt, idx)
        else:
            result = self._parse_short(opt, idx)
        logger.debug("getopt.option name={}", result.name)
        return result

    def _find_option(self) -> Optional[int]:
        if is_option(self._input[0]):
            return 0
        if not self._reorder:
            return None
        for idx, arg in enumerate(self._input):
            if is_option(arg):
                logger.debug("getopt.reorder skipped={}", idx)
                return idx
        return None

    def _parse_long(self, opt: str, idx: int) -> Option:
        name, eq, value = opt[2:].partition("=")
        spec = self._long.get(name)
        if spec is None:
            raise self._error(OptionNotExistsException(f"--{name}"))

        if spec.has_arg:
            if eq:
                # --option=arg
                del self._input[idx]
                return Option(spec.long, value)
            if idx == len(self._input) - 1:
                raise self._error(MissingArgumentException(f"--{spec.long}"))
            arg = self._input[idx + 1]
            del self._input[idx:idx + 2]
            return Option(spec.long, arg)

        if eq:
            raise self._error(OptionNotHasArgumentException(f"--{spec.long}"))
        del self._input[idx]
        return Option(spec.long, "")

    def _parse_short(self, opt: str, idx: int) -> Option:
        spec = self._short.get(opt[1])
        if spec is None:
            raise self._error(OptionNotExistsException(f"-{opt[1]}"))
        rest = opt[2:]

        if spec.has_arg:
            if rest:
                del self._input[idx]
                return Option(spec.name, rest)
            if idx == len(self._input) - 1:
                raise self._error(MissingArgumentException(f"-{spec.short}"))
            arg = self._input[idx + 1]
            del self._input[idx:idx + 2]
            return Option(spec.name, arg)

        if rest:
            # leave the rest of the cluster for the next call
            self._input[idx] = "-" + rest
        else:
            del self._input[idx]
        return Option(spec.name, "")

    def _error(self, error: OptionParseException) -> OptionParseException:
        logger.debug("getopt.error option={} message={}", error.option, error.message)
        return error

    def __iter__(self) -> Iterator[Option]:
        while True:
            result = self.getopt()
            if result is END:
                return
            yield result

    def __repr__(self):
        return f"Parser(options={self._opts!r}, args={self._input!r}, reorder={self._reorder})"


# Example usage
if __name__ == "__main__":
    parser = Parser(reorder=True)
    parser.flag("v", "verbose")
    parser.flag("q", "quiet")
    parser.option("o", "output")
    parser.option(None, "bytes")
    parser.consume_args()

    try:
        for name, arg in parser:
            print(f"option {name}: {arg!r}" if arg else f"option {name}")
    except OptionParseException as e:
        print(e, file=sys.stderr)
        sys.exit(1)
    for arg in parser.args():
        print(f"argument {arg!r}")
