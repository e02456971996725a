import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402

from crewtrack.analyze.session import RaceContext  # noqa: E402
from crewtrack.visualize.plot import plot_course  # noqa: E402


def test_plot_course_draws_layers(long_track):
    ctx = RaceContext(track=long_track)
    runner = ctx.runner_position(40.0).position

    fig = plot_course(
        long_track,
        covered=ctx.covered_segment(40.0),
        runner=runner,
        stations=[("Gate", 0.0, 0.1)],
        title="Course (3 lap(s))",
        show=False,
    )
    try:
        ax = fig.axes[0]
        assert ax.get_title() == "Course (3 lap(s))"
        labels = [line.get_label() for line in ax.get_lines()]
        assert labels == ["Course", "This lap"]
        assert [t.get_text() for t in ax.texts] == ["Gate"]
    finally:
        plt.close(fig)


def test_plot_course_track_only(long_track):
    fig = plot_course(long_track, show=False)
    try:
        assert len(fig.axes[0].get_lines()) == 1
    finally:
        plt.close(fig)
