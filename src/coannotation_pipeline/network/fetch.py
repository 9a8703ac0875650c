"""Download and parse pre-scored global functional networks."""

from pathlib import Path

import httpx
import polars as pl
import structlog
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from coannotation_pipeline.network.models import GIANT_NETWORK_URL, NETWORK_COLUMNS

logger = structlog.get_logger()


@retry(
    stop=stop_after_attempt(5),
    wait=wait_exponential(multiplier=1, min=4, max=60),
    retry=retry_if_exception_type(
        (httpx.HTTPStatusError, httpx.ConnectError, httpx.TimeoutException)
    ),
)
def download_functional_network(
    output_path: Path,
    url: str = GIANT_NETWORK_URL,
    force: bool = False,
    timeout: float = 120.0,
) -> Path:
    """Download a global functional network file with retry and streaming.

    The file is stored as downloaded (gzip stays gzip); parse_functional_network
    reads both forms.

    Args:
        output_path: Where to save the network file
        url: Network file URL (default: GIANT/HumanBase global top edges)
        force: If True, re-download even if the file exists
        timeout: Request timeout in seconds

    Returns:
        Path to the downloaded file

    Raises:
        httpx.HTTPStatusError: On HTTP errors (after retries)
        httpx.ConnectError: On connection errors (after retries)
        httpx.TimeoutException: On timeout (after retries)
    """
    output_path = Path(output_path)

    if output_path.exists() and not force:
        logger.info(
            "network_file_exists",
            path=str(output_path),
            size_mb=round(output_path.stat().st_size / 1024 / 1024, 2),
        )
        return output_path

    output_path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = output_path.with_suffix(output_path.suffix + ".tmp")

    logger.info("network_download_start", url=url)

    with httpx.stream("GET", url, timeout=timeout, follow_redirects=True) as response:
        response.raise_for_status()

        total_bytes = int(response.headers.get("content-length", 0))
        downloaded = 0

        with open(temp_path, "wb") as f:
            for chunk in response.iter_bytes(chunk_size=8192):
                f.write(chunk)
                downloaded += len(chunk)

                # Log progress every 50MB
                if total_bytes > 0 and downloaded % (50 * 1024 * 1024) < 8192:
                    logger.info(
                        "network_download_progress",
                        downloaded_mb=round(downloaded / 1024 / 1024, 2),
                        total_mb=round(total_bytes / 1024 / 1024, 2),
                        percent=round(downloaded / total_bytes * 100, 1),
                    )

    temp_path.rename(output_path)

    logger.info(
        "network_download_complete",
        path=str(output_path),
        size_mb=round(output_path.stat().st_size / 1024 / 1024, 2),
    )
    return output_path


def parse_functional_network(path: Path) -> pl.DataFrame:
    """Parse a headerless, tab-separated network file (gene1, gene2, score).

    Genes are Entrez IDs. Gzip-compressed files (.gz) are decompressed by
    the CSV reader itself.

    Returns:
        DataFrame with columns gene1 (Int64), gene2 (Int64), score (Float64)
    """
    path = Path(path)
    logger.info("network_parse_start", path=str(path))

    schema = dict(zip(NETWORK_COLUMNS, (pl.Int64, pl.Int64, pl.Float64)))
    df = pl.read_csv(
        path,
        separator="\t",
        has_header=False,
        schema=schema,
        quote_char=None,
    )

    logger.info("network_parse_complete", edge_count=df.height)
    return df
