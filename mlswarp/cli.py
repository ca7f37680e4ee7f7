from __future__ import annotations
import typer, json, logging, sys, time, cv2
from rich import print
from rich.logging import RichHandler
from pathlib import Path
from typing import Optional
from pydantic import ValidationError
from .io.controls import load_job, WarpJob
from .io.image import read_image, write_image
from .image.warp import warp_dense, warp_sparse
from .deform.mls import deform, ControlPointError
from .demos.draw import draw_controls

app = typer.Typer(add_completion=False, help="Moving least squares image warping (mlswarp)")

def _job(controls: Path, kind: Optional[str], sparse: Optional[int]=None, workers: Optional[int]=None) -> WarpJob:
    try:
        job = load_job(controls)
        update = {k: v for k, v in {"kind": kind, "subresolution": sparse, "workers": workers}.items() if v is not None}
        return WarpJob.model_validate({**job.model_dump(), **update})
    except (OSError, ValidationError, ValueError) as e:
        print(f"[red]Invalid controls file {controls}:[/red] {e}", file=sys.stderr)
        raise typer.Exit(1)

@app.command()
def warp(input: Path = typer.Argument(..., exists=True, dir_okay=False),
         output: Path = typer.Argument(...),
         controls: Path = typer.Option(..., "--controls", "-c", exists=True, dir_okay=False),
         kind: Optional[str] = typer.Option(None, help="affine | similarity | rigid"),
         sparse: Optional[int] = typer.Option(None, help="subresolution factor, 1 = dense"),
         workers: Optional[int] = typer.Option(None),
         show_controls: bool = typer.Option(False, "--show-controls"),
         verbose: bool = typer.Option(False, "--verbose", "-v")):
    """
    Warp INPUT so that the src control points land on the dst ones, save to OUTPUT.
    """
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(message)s", handlers=[RichHandler()])
    job = _job(controls, kind, sparse, workers)
    src, dst = job.controls.as_arrays()
    try:
        img = read_image(input)
    except FileNotFoundError as e:
        print(f"[red]{e}[/red]", file=sys.stderr)
        raise typer.Exit(1)
    t0 = time.time()
    if job.subresolution > 1:
        out = warp_sparse(img, src, dst, job.kind, job.subresolution, workers=job.workers)
    else:
        out = warp_dense(img, src, dst, job.kind, workers=job.workers)
    dt = time.time() - t0
    if show_controls:
        draw_controls(out, src, color=(0,0,255))
        draw_controls(out, dst, color=(0,255,0))
    try:
        write_image(output, out)
    except (RuntimeError, cv2.error) as e:
        print(f"[red]Cannot write {output}:[/red] {e}", file=sys.stderr)
        raise typer.Exit(1)
    h, w = img.shape[:2]
    print(f"[green]Saved[/green] {output} ({w}x{h}, {job.kind}, {len(src)} controls, factor {job.subresolution}, {dt:.2f}s)")

@app.command(name="deform")
def deform_point(x: float, y: float,
                 controls: Path = typer.Option(..., "--controls", "-c", exists=True, dir_okay=False),
                 kind: Optional[str] = typer.Option(None, help="affine | similarity | rigid")):
    """
    Print where the point (X, Y) moves under the deformation.
    """
    job = _job(controls, kind)
    src, dst = job.controls.as_arrays()
    try:
        x2, y2 = deform(job.kind, src, dst, (x, y))
    except ControlPointError as e:
        print(f"[red]{e}[/red]", file=sys.stderr)
        raise typer.Exit(1)
    print(json.dumps({"x": x2, "y": y2, "kind": job.kind}))

if __name__ == "__main__":
    app()
