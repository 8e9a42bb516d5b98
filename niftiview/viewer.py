"""
viewer.py

Interactive matplotlib viewer for a loaded session.
A slider scrolls through the rasterized Z slices.
"""

import matplotlib.pyplot as plt
from matplotlib.widgets import Slider


def build_viewer(session, title=None):
    """
    Build a figure showing the session's current slice with a slice slider.

    Args:
        session: ViewerSession with a committed volume
        title: Figure title (default: the session description)

    Returns:
        (fig, slider)
    """
    bounds = session.slider_range()
    if bounds is None:
        raise ValueError(session.describe())

    fig, ax = plt.subplots()
    fig.subplots_adjust(bottom=0.15)
    image = ax.imshow(session.current_slice.pixels, interpolation="nearest")
    ax.set_title(title or session.describe())
    ax.axis("off")

    slider_ax = fig.add_axes([0.2, 0.04, 0.6, 0.04])
    slider = Slider(
        slider_ax,
        "Slice",
        bounds[0],
        max(bounds[1], bounds[0] + 1),
        valinit=session.current_index,
        valstep=1,
    )

    def on_change(value):
        current = session.select(int(value))
        image.set_data(current.pixels)
        if title is None:
            ax.set_title(session.describe())
        fig.canvas.draw_idle()

    slider.on_changed(on_change)
    return fig, slider


def view_session(session, title=None):
    fig, slider = build_viewer(session, title=title)
    plt.show()
    return fig, slider
