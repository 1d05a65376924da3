"""
XSLT processing, through an external processor or in-process with lxml.

The external command is a template such as:

    java -jar saxon.jar -s:{input} -xsl:{stylesheet} -o:{output}

Without {output}, the transformed document is read from stdout. Params are
appended as name=value arguments.
"""

from pathlib import Path
from typing import Dict, List, Optional, Union
import logging
import shlex
import subprocess
import tempfile

from lxml import etree

from datamapper.config import XsltConfig, app_config
from datamapper.exceptions import PreprocessError

logger = logging.getLogger(__name__)

Stylesheet = Union[str, bytes]

STDERR_EXCERPT = 500


class XsltProcessor:
    """Applies an XSLT stylesheet to a document."""

    def __init__(self, config: Optional[XsltConfig] = None):
        """
        Initialize XsltProcessor

        Args:
            config: Processor command, timeout and temp dir (default: app config)
        """
        self.config = config or app_config.xslt

    @property
    def is_external(self) -> bool:
        return bool(self.config.command.strip())

    def transform(self, content: bytes, stylesheet: Stylesheet, params: Optional[Dict[str, str]] = None) -> bytes:
        """
        Transform a document.

        Args:
            content: Source document
            stylesheet: Stylesheet text
            params: Stylesheet parameters

        Returns:
            bytes: Transformed document

        Raises:
            PreprocessError: If the processor fails, times out or outputs nothing
        """
        if isinstance(stylesheet, str):
            stylesheet = stylesheet.encode("utf-8")
        params = params or {}
        if self.is_external:
            return self._run_external(content, stylesheet, params)
        return self._run_lxml(content, stylesheet, params)

    def _run_external(self, content: bytes, stylesheet: bytes, params: Dict[str, str]) -> bytes:
        with tempfile.TemporaryDirectory(prefix="datamapper-", dir=self.config.temp_dir) as workdir:
            input_path = Path(workdir) / "input.xml"
            stylesheet_path = Path(workdir) / "stylesheet.xsl"
            output_path = Path(workdir) / "output.xml"
            input_path.write_bytes(content)
            stylesheet_path.write_bytes(stylesheet)

            args = self._build_args(str(input_path), str(stylesheet_path), str(output_path), params)
            logger.debug(f"Running XSLT processor: {' '.join(args)}")

            try:
                completed = subprocess.run(args, capture_output=True, timeout=self.config.timeout)
            except subprocess.TimeoutExpired as exc:
                raise PreprocessError(
                    f"XSLT processor timed out after {self.config.timeout}s",
                    stderr=_excerpt(exc.stderr),
                ) from exc
            except OSError as exc:
                raise PreprocessError(f"Cannot run XSLT processor '{args[0]}': {exc}") from exc

            stderr = _excerpt(completed.stderr)
            if completed.returncode != 0:
                raise PreprocessError(
                    f"XSLT processor exited with code {completed.returncode}: {stderr}",
                    returncode=completed.returncode,
                    stderr=stderr,
                )

            if "{output}" in self.config.command:
                output = output_path.read_bytes() if output_path.is_file() else b""
            else:
                output = completed.stdout

            if not output.strip():
                raise PreprocessError("XSLT processor produced no output", returncode=0, stderr=stderr)
            return output

    def _build_args(self, input_path: str, stylesheet_path: str, output_path: str, params: Dict[str, str]) -> List[str]:
        args = [
            token.replace("{input}", input_path)
            .replace("{stylesheet}", stylesheet_path)
            .replace("{output}", output_path)
            for token in shlex.split(self.config.command)
        ]
        args.extend(f"{name}={value}" for name, value in params.items())
        return args

    @staticmethod
    def _run_lxml(content: bytes, stylesheet: bytes, params: Dict[str, str]) -> bytes:
        parser = etree.XMLParser(resolve_entities=False, no_network=True)
        try:
            xslt = etree.XSLT(etree.fromstring(stylesheet, parser))
        except (etree.XMLSyntaxError, etree.XSLTParseError) as exc:
            raise PreprocessError(f"Invalid stylesheet: {exc}") from exc

        try:
            document = etree.fromstring(content, parser)
        except etree.XMLSyntaxError as exc:
            raise PreprocessError(f"Source is not XML: {exc}") from exc

        try:
            result = xslt(document, **{name: etree.XSLT.strparam(str(value)) for name, value in params.items()})
        except etree.XSLTApplyError as exc:
            raise PreprocessError(f"XSLT transform failed: {exc}") from exc

        output = bytes(result)
        if not output.strip():
            raise PreprocessError("XSLT transform produced no output")
        return output


def _excerpt(stream: Optional[bytes]) -> str:
    if not stream:
        return ""
    return stream.decode("utf-8", errors="replace").strip()[:STDERR_EXCERPT]
