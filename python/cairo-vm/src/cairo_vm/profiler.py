import logging
from time import perf_counter
from typing import Sequence

import polars as pl

from cairo_vm.vm.vm_core import TraceEntry

logger = logging.getLogger(__name__)

TRACE_SCHEMA = [("pc", pl.UInt64), ("ap", pl.UInt64), ("fp", pl.UInt64)]


def trace_to_frame(relocated_trace: Sequence[TraceEntry[int]]) -> pl.DataFrame:
    return pl.DataFrame(
        {
            "pc": [x.pc for x in relocated_trace],
            "ap": [x.ap for x in relocated_trace],
            "fp": [x.fp for x in relocated_trace],
        },
        schema=TRACE_SCHEMA,
    )


def profile_frames(trace: pl.DataFrame) -> pl.DataFrame:
    """
    Aggregates a relocated trace per call frame.

    A frame is identified by its fp. For each frame returns the fp of its caller,
    the steps executed directly in the frame, the steps from its first to its
    last step (callees included), and the first pc, i.e. the callee entrypoint.
    """
    logger.info("Begin profiling")
    start = perf_counter()

    first_pc = trace.select(["fp", "pc"]).unique(subset=["fp"], keep="first")

    # Consecutive steps sharing an fp run inside the same frame
    frames = (
        trace["fp"]
        .rle()
        .struct.unnest()
        .rename({"value": "fp"})
        .with_columns(
            prev_fp=pl.col("fp").shift(),
            steps=pl.col("len").cum_sum(),
        )
        .group_by(["fp"], maintain_order=True)
        .agg(
            parent=pl.col("prev_fp").first(),
            total_cost=pl.col("len").sum(),
            cumulative_cost=(
                pl.col("steps").last() - pl.col("steps").first() + pl.col("len").first()
            ),
        )
        .join(first_pc, how="left", on="fp")
        .rename({"pc": "entry_pc"})
        .select(["fp", "parent", "entry_pc", "total_cost", "cumulative_cost"])
    )

    logger.info(f"Building frames took {perf_counter() - start} seconds")
    return frames
