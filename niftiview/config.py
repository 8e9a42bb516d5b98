import os

# Accepted filename suffixes (hint only, content is validated by the decoder)
ACCEPTED_SUFFIXES = (".nii", ".nii.gz")

# Resource guards for pathological headers / decompression bombs
MAX_VOXELS = int(os.environ.get("NIFTIVIEW_MAX_VOXELS", 512 * 512 * 1024))
MAX_DECOMPRESSED_BYTES = int(
    os.environ.get("NIFTIVIEW_MAX_DECOMPRESSED_BYTES", 4 * 1024 ** 3)
)

# Slice preview export
PREVIEW_DIR = os.environ.get("NIFTIVIEW_PREVIEW_DIR", "slice_previews")
PREVIEW_STEP = 1

# MLflow logging of slice previews
MLFLOW_URI = os.environ.get("MLFLOW_TRACKING_URI", "http://localhost:5000")
MLFLOW_EXPERIMENT = "NIfTI-Slice-Previews"
