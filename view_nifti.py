"""
view_nifti.py

Open a .nii / .nii.gz file in the interactive slice viewer.

Usage:
    python view_nifti.py subject-1-T2.nii.gz
"""

import sys

from niftiview.errors import NiftiViewError
from niftiview.session import ViewerSession
from niftiview.viewer import view_session


def main(path):
    session = ViewerSession()
    try:
        session.load_file(path)
    except NiftiViewError as e:
        print(f"Error: {e.message}")
        return 1
    if session.error is not None:
        print(f"Error: {session.error.message}")
        return 1

    print(session.describe())
    view_session(session)
    return 0


if __name__ == "__main__":
    if len(sys.argv) != 2:
        raise SystemExit("Usage: python view_nifti.py <file.nii[.gz]>")
    sys.exit(main(sys.argv[1]))
