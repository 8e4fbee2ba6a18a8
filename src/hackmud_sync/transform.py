"""Source-to-deployable transformation for hackmud scripts.

The engine treats the transformer as an opaque, possibly failing
function ``(code, extension) -> str``.  ``ScriptTransformer`` is the
default implementation:

1. Capture the autocomplete hint (``// @autocomplete ...`` on the first
   line, or a comment right after the opening brace of the function).
2. Strip ``export`` from a leading ``export function``.
3. Rewrite host calls ``#fs.user.name(`` into the identifier-safe form
   ``$fs$user$name(`` so compilers and minifiers leave them alone, and
   name a leading anonymous function ``script``.
4. Compile TypeScript with an external compiler (stdin -> stdout), or
   check JavaScript syntax with ``esprima``.
5. Minify with ``rjsmin``.
6. Restore host calls, make the leading function anonymous again and
   re-attach the autocomplete hint.
"""

from __future__ import annotations

import logging
import re
import shlex
import subprocess
from typing import Callable

import esprima
import rjsmin
from esprima.error_handler import Error as ParseError

from hackmud_sync.errors import EmptyOutputError, TransformError

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS: tuple[str, ...] = (".js", ".ts")

DEFAULT_TS_COMPILER = "esbuild --loader=ts --target=es2015"

Transformer = Callable[[str, str], str]

_AUTOCOMPLETE_RE = re.compile(
    r"^(?://\s*@autocomplete (.+)"
    r"|function(?: \w+| )?\([^)]*\)\s*\{\s*//(.+))\n"
)
_HOST_CALL_RE = re.compile(r"[#$]([\w.]+\()")
_LEADING_ANON_FUNCTION_RE = re.compile(
    r"^((?:\s*(?://[^\n]*|/\*.*?\*/))*\s*)function\s*\(", re.DOTALL
)
_MANGLED_CALL_RE = re.compile(r"\$[\w$]+\(")
_NAMED_FUNCTION_RE = re.compile(r"function ?\w+\(")
_FUNCTION_HEAD_RE = re.compile(r"function \([^)]*\) ?\{")

_PREPROCESSOR_TOKEN_RE = re.compile(r"#(?=[A-Za-z_])")
_WHITESPACE_RE = re.compile(r"[ \n\r]")


def script_length(script: str) -> int:
    """Return the character count hackmud charges for *script*.

    Spaces, ``\\n`` and ``\\r`` are free.
    """
    return len(_WHITESPACE_RE.sub("", script))


def _find_autocomplete(script: str) -> str | None:
    match = _AUTOCOMPLETE_RE.match(script)
    if match is None:
        return None
    return (match.group(1) or match.group(2)).strip()


def _mangle_host_calls(script: str) -> str:
    return _HOST_CALL_RE.sub(
        lambda m: "$" + m.group(1).replace(".", "$"), script
    )


def _restore_host_calls(script: str) -> str:
    return _MANGLED_CALL_RE.sub(
        lambda m: "#" + m.group(0)[1:].replace("$", "."), script
    )


def compile_typescript(
    script: str, command: str = DEFAULT_TS_COMPILER, timeout: float = 30
) -> str:
    """Compile TypeScript to JavaScript with an external compiler.

    The compiler reads the source from stdin and writes JavaScript to
    stdout.

    Raises:
        TransformError: If the compiler is missing, times out, or exits
            non-zero.
    """
    argv = shlex.split(command)
    try:
        result = subprocess.run(
            argv,
            input=script,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError as exc:
        raise TransformError(
            f"TypeScript compiler not found: {argv[0]}"
        ) from exc
    except subprocess.TimeoutExpired as exc:
        raise TransformError(
            f"TypeScript compiler timed out after {timeout}s"
        ) from exc

    if result.returncode != 0:
        detail = result.stderr.strip() or f"exit code {result.returncode}"
        raise TransformError(detail)
    return result.stdout


def check_syntax(script: str) -> None:
    """Raise TransformError if *script* is not valid JavaScript."""
    try:
        # #G, #FMCL and friends are not identifiers
        esprima.parseScript(_PREPROCESSOR_TOKEN_RE.sub("$", script))
    except ParseError as e:
        raise TransformError(f"JavaScript syntax error: {e}") from e


def process_script(
    script: str,
    extension: str = ".js",
    *,
    compiler: str = DEFAULT_TS_COMPILER,
    timeout: float = 30,
) -> str:
    """Minify a JavaScript or TypeScript script for upload.

    Args:
        script: Source text.
        extension: Source extension, ``.js`` or ``.ts``.
        compiler: Command used to compile TypeScript sources.
        timeout: Compiler timeout in seconds.

    Returns:
        The deployable script text.

    Raises:
        TransformError: If the extension is unsupported or compilation
            fails, or a JavaScript source does not parse.
        EmptyOutputError: If nothing is left after minification.
    """
    if extension not in SUPPORTED_EXTENSIONS:
        raise TransformError(f"Unsupported script extension: {extension}")

    autocomplete = _find_autocomplete(script)

    if script.startswith("export function"):
        script = script.replace("export ", "", 1)

    script = _mangle_host_calls(script)
    script = _LEADING_ANON_FUNCTION_RE.sub(
        r"\1function script(", script, count=1
    )

    if extension == ".ts":
        script = compile_typescript(script, compiler, timeout)
    else:
        check_syntax(script)

    script = rjsmin.jsmin(script).strip()
    if not script:
        raise EmptyOutputError()

    script = _restore_host_calls(script)
    script = _NAMED_FUNCTION_RE.sub("function (", script, count=1)

    if autocomplete:
        # minified output is a single line, so the hint needs its own line end
        script = _FUNCTION_HEAD_RE.sub(
            lambda m: f"{m.group(0)} // {autocomplete}\n",
            script,
            count=1,
        )

    return script


class ScriptTransformer:
    """Default transformer bound to a compiler command.

    Instances are callables matching the ``Transformer`` signature.
    """

    def __init__(
        self,
        compiler: str = DEFAULT_TS_COMPILER,
        timeout: float = 30,
    ) -> None:
        self.compiler = compiler
        self.timeout = timeout

    def __call__(self, code: str, extension: str) -> str:
        return process_script(
            code,
            extension,
            compiler=self.compiler,
            timeout=self.timeout,
        )
