"""
Integration tests for the main squaring processor.
"""

import base64

import cv2
import numpy as np
import pytest

from src.common.types import PixelBuffer
from src.squaring.config_loader import load_config
from src.squaring.errors import (
    DataUrlDecodeError,
    ImageDecodeError,
    InvalidQuadrilateral,
    SquaringError,
)
from src.squaring.processor import SquaringProcessor, process_image
from src.squaring.projection import Projection
from src.squaring.types import (
    HomographyConfig,
    OutputConfig,
    OutputFormat,
    SolverMethod,
    SquaringConfig,
)


def decode_png(data):
    """Decode PNG bytes with OpenCV, keeping alpha, as RGBA."""
    bgra = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_UNCHANGED)
    return cv2.cvtColor(bgra, cv2.COLOR_BGRA2RGBA)


@pytest.fixture
def red_rgb():
    rgb = np.zeros((100, 100, 3), dtype=np.uint8)
    rgb[:, :] = (255, 0, 0)
    return rgb


def make_config(method=SolverMethod.CLOSED_FORM, fmt=OutputFormat.PNG):
    return SquaringConfig(
        homography=HomographyConfig(method=method, epsilon=1e-9),
        output=OutputConfig(format=fmt, png_compression=3, jpeg_quality=95),
    )


class TestSquaringProcessor:
    """Tests for SquaringProcessor class."""

    def test_initialization_default_config(self):
        """Test processor initialization with default config."""
        processor = SquaringProcessor()

        assert processor.config is not None
        assert processor.config.homography.method == SolverMethod.CLOSED_FORM
        assert processor.config.output.format == OutputFormat.PNG

    def test_initialization_with_config(self):
        config = make_config(method=SolverMethod.LINEAR_SYSTEM)
        processor = SquaringProcessor(config=config)

        assert processor.config is config

    def test_process_red_square(self, red_square_image):
        """Test the red square scenario through the processor."""
        result = SquaringProcessor().process(
            red_square_image, [(10, 10), (90, 10), (90, 90), (10, 90)]
        )

        assert (result.width, result.height) == (80, 80)
        assert np.all(result.image.data == [255, 0, 0, 255])
        assert result.bounding_box.to_tuple() == (10, 10, 90, 90)

    def test_process_skewed_reports_geometry(self, gradient_image, skewed_points):
        """Test that the result carries ordered corners and the projection."""
        shuffled = [skewed_points[i] for i in (2, 0, 3, 1)]
        result = SquaringProcessor().process(gradient_image, shuffled)

        assert (result.width, result.height) == (70, 80)
        assert result.quadrilateral.tolist() == [list(p) for p in skewed_points]

        local = result.quadrilateral - [result.bounding_box.x_min, result.bounding_box.y_min]
        mapped = result.projection.map_points(local)
        assert np.allclose(mapped, [[0, 0], [70, 0], [70, 80], [0, 80]], atol=1.0)

    @pytest.mark.parametrize("method", [SolverMethod.CLOSED_FORM, SolverMethod.LINEAR_SYSTEM])
    def test_process_quad_with_bbox_origin_on_horizon(self, method):
        """Test a valid quad whose forward map has a zero bottom-right entry."""
        image = PixelBuffer.from_array(np.full((200, 200, 3), 90, dtype=np.uint8))
        result = SquaringProcessor(config=make_config(method=method)).process(
            image, [(110, 10), (90, 10), (50, 110), (50, 80)]
        )

        assert (result.width, result.height) == (60, 100)
        assert result.quadrilateral[0].tolist() == [90, 10]
        assert result.sampling_projection.and_then(result.projection) == (
            Projection.identity()
        )

    def test_solver_methods_agree(self, gradient_image, skewed_points):
        closed = SquaringProcessor(config=make_config()).process(gradient_image, skewed_points)
        linear = SquaringProcessor(
            config=make_config(method=SolverMethod.LINEAR_SYSTEM)
        ).process(gradient_image, skewed_points)

        assert closed.projection == linear.projection

    def test_process_invalid_quadrilateral(self, red_square_image):
        """Test 3 collinear points plus 1 off-line point are rejected."""
        with pytest.raises(InvalidQuadrilateral):
            SquaringProcessor().process(
                red_square_image, [(10, 10), (50, 10), (90, 10), (50, 90)]
            )


class TestProcessPayload:
    """Tests for the encode/decode wrapper around the pipeline."""

    def test_data_url_to_png(self, red_rgb, png_data_url):
        """Test the full payload round: data URL in, PNG bytes out."""
        png = SquaringProcessor().process_payload(
            png_data_url(red_rgb), [(10, 10), (90, 10), (90, 90), (10, 90)]
        )

        assert png.startswith(b"\x89PNG")
        rgba = decode_png(png)
        assert rgba.shape == (80, 80, 4)
        assert np.all(rgba == [255, 0, 0, 255])

    def test_raw_bytes_payload(self, red_rgb):
        ok, encoded = cv2.imencode(".png", cv2.cvtColor(red_rgb, cv2.COLOR_RGB2BGR))
        assert ok

        png = SquaringProcessor().process_payload(
            encoded.tobytes(), [(20, 10), (80, 30), (70, 90), (10, 70)]
        )

        assert decode_png(png).shape == (80, 70, 4)

    def test_host_json_control_points(self, red_rgb, png_data_url):
        """Test the {'x': .., 'y': ..} control point shape."""
        points = [{"x": 20, "y": 10}, {"x": 80, "y": 30}, {"x": 70, "y": 90}, {"x": 10, "y": 70}]
        png = process_image(png_data_url(red_rgb), points)

        assert decode_png(png).shape == (80, 70, 4)

    def test_geometry_checked_before_decoding(self):
        """Test bad points fail even when the payload is also bad."""
        with pytest.raises(InvalidQuadrilateral):
            SquaringProcessor().process_payload(
                "not a data url", [(0, 0), (100, 0), (50, 100), (50, 30)]
            )

    def test_wrong_point_count(self, red_rgb, png_data_url):
        with pytest.raises(InvalidQuadrilateral, match="Expected exactly 4"):
            process_image(png_data_url(red_rgb), [(0, 0), (10, 0), (10, 10)])

    def test_malformed_data_url(self):
        with pytest.raises(DataUrlDecodeError):
            process_image("data:image/png;base64", [(10, 10), (90, 10), (90, 90), (10, 90)])

    def test_undecodable_image(self):
        uri = "data:image/png;base64," + base64.b64encode(b"garbage" * 4).decode("ascii")
        with pytest.raises(ImageDecodeError):
            process_image(uri, [(10, 10), (90, 10), (90, 90), (10, 90)])

    def test_errors_share_one_base(self):
        """Test every failure can be reported through a single handler."""
        with pytest.raises(SquaringError) as exc_info:
            process_image("nope", [(10, 10), (90, 10), (90, 90), (10, 90)])

        assert str(exc_info.value)

    def test_jpeg_output_config(self, red_rgb, png_data_url):
        config = make_config(fmt=OutputFormat.JPEG)
        data = process_image(
            png_data_url(red_rgb), [(10, 10), (90, 10), (90, 90), (10, 90)], config=config
        )

        assert data.startswith(b"\xff\xd8")

    def test_default_config_file_matches_defaults(self):
        config = load_config()
        assert config.output.format == OutputFormat.PNG
