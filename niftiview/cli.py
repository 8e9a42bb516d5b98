"""
cli.py

Decode a NIfTI file, export its rasterized slices as PNG previews
and optionally log them to MLflow as artifacts.

Usage:
    niftiview subject-01.nii.gz --step 10 --mlflow
    python -m niftiview.cli subject-01.nii --show
"""

import argparse
import os
import sys

import mlflow

from . import config
from .errors import NiftiViewError
from .session import ViewerSession


def export_slices(slices, out_dir, step=config.PREVIEW_STEP):
    """Write every ``step``-th slice as slice_<z>.png; return the paths."""
    os.makedirs(out_dir, exist_ok=True)
    paths = []
    for z in range(0, len(slices), step):
        save_path = os.path.join(out_dir, f"slice_{z}.png")
        with open(save_path, "wb") as f:
            f.write(slices[z].to_png())
        paths.append(save_path)
    return paths


def log_slices_to_mlflow(path, session, paths, mlflow_uri=config.MLFLOW_URI):
    mlflow.set_tracking_uri(mlflow_uri)
    mlflow.set_experiment(config.MLFLOW_EXPERIMENT)

    with mlflow.start_run(run_name="SliceViewer"):
        header = session.volume.header
        mlflow.log_param("nifti_file", path)
        mlflow.log_param("shape", (header.width, header.height, header.depth))
        mlflow.log_param("datatype", header.datatype.name)

        for save_path in paths:
            mlflow.log_artifact(save_path)

        print("All preview slices logged to MLflow!")
        print("Run URL:", mlflow.get_artifact_uri())


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Decode a NIfTI volume and export its slices.")
    p.add_argument("path", help="Path to a .nii or .nii.gz file")
    p.add_argument("--out-dir", default=config.PREVIEW_DIR, help="Directory for slice PNGs")
    p.add_argument("--step", type=int, default=config.PREVIEW_STEP, help="Export every Nth slice")
    p.add_argument("--mlflow", action="store_true", help="Log the exported slices to MLflow")
    p.add_argument("--mlflow-uri", default=config.MLFLOW_URI, help="MLflow tracking URI")
    p.add_argument("--show", action="store_true", help="Open the interactive slice viewer")
    args = p.parse_args(argv)
    if args.step < 1:
        p.error("--step must be >= 1")
    return args


def main(argv=None):
    args = parse_args(argv)
    session = ViewerSession()

    try:
        session.load_file(args.path)
    except (NiftiViewError, OSError) as e:
        print(f"Error: {getattr(e, 'message', e)}", file=sys.stderr)
        return 1
    if session.error is not None:
        print(f"Error: {session.error.message}", file=sys.stderr)
        return 1

    header = session.volume.header
    print("Shape:", (header.width, header.height, header.depth))
    print("Datatype:", header.datatype.name)
    print("Voxel size:", header.pixdim[1:4])
    for block in session.volume.extensions:
        print(f"Extension: {block.label} ({len(block.content)} bytes)")

    paths = export_slices(session.slices, args.out_dir, step=args.step)
    print(f"Saved {len(paths)} slices to {args.out_dir}")

    if args.mlflow:
        log_slices_to_mlflow(args.path, session, paths, mlflow_uri=args.mlflow_uri)

    if args.show:
        from .viewer import view_session

        view_session(session)
    return 0


if __name__ == "__main__":
    sys.exit(main())
