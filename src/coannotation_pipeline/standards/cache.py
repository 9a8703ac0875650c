"""File cache around the pure standard builders.

If the file already exists it is loaded and returned as-is; no freshness
or parameter check is done, so delete the file to rebuild. Otherwise the
builder runs and its result is saved. A failed save is logged and the
computed result is still returned.
"""

import contextlib
import functools
from pathlib import Path
from typing import Callable, Optional

import numpy as np
import polars as pl
import structlog

from coannotation_pipeline.standards.pairwise import (
    CoAnnotationMatrix,
    make_co_annotation,
    make_co_annotation_matrix,
)

logger = structlog.get_logger()


def save_result(result, path: Path) -> None:
    """Save a pair list as Parquet or a CoAnnotationMatrix as .npz, whatever the file suffix."""
    path = Path(path)
    if isinstance(result, CoAnnotationMatrix):
        with open(path, "wb") as f:
            np.savez_compressed(f, genes=np.array(result.genes, dtype=str), values=result.values)
    else:
        with open(path, "wb") as f:
            result.write_parquet(f)


def load_pair_list(path: Path) -> pl.DataFrame:
    """Load a pair list saved by save_result."""
    return pl.read_parquet(path)


def load_matrix(path: Path) -> CoAnnotationMatrix:
    """Load a CoAnnotationMatrix saved by save_result, whatever the file suffix."""
    with np.load(path, allow_pickle=False) as data:
        return CoAnnotationMatrix(
            genes=[str(gene) for gene in data["genes"]],
            values=data["values"].astype(np.int8),
        )


def file_cached(builder: Callable, loader: Callable = load_pair_list) -> Callable:
    """Add a file_location keyword to a builder.

    The cached file is read back with loader, which must match the type
    the builder returns; the file suffix plays no part in it.
    file_location=None runs the builder with no file access at all.
    """

    @functools.wraps(builder)
    def wrapper(*args, file_location: Optional[Path | str] = None, **kwargs):
        if file_location is None:
            return builder(*args, **kwargs)

        path = Path(file_location)
        if path.exists():
            logger.info("standard_cache_hit", path=str(path), builder=builder.__name__)
            return loader(path)

        logger.info("standard_cache_miss", path=str(path), builder=builder.__name__)
        result = builder(*args, **kwargs)

        try:
            save_result(result, path)
        except OSError as e:
            # Drop a partially written file so it is not served as a cache hit
            with contextlib.suppress(OSError):
                path.unlink(missing_ok=True)
            logger.warning(
                "standard_cache_save_failed",
                path=str(path),
                error=str(e),
                message="Directory/file does not exist or no permission; returning result without saving",
            )
        else:
            logger.info("standard_cache_saved", path=str(path))

        return result

    return wrapper


make_co_annotation_cached = file_cached(make_co_annotation)
make_co_annotation_matrix_cached = file_cached(make_co_annotation_matrix, loader=load_matrix)
