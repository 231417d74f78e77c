"""
Tests for configuration loading and validation.
"""

import pytest
import yaml
from pydantic import ValidationError

from podtail.core.config import Config, HueInterval, LoggingConfig, StreamSettings
from podtail.core.exceptions import ConfigurationError


class TestHueInterval:
    """Test HueInterval model."""

    def test_parse(self):
        """Test parsing a start-end string."""
        interval = HueInterval.parse("20-80")

        assert interval.start == 20
        assert interval.end == 80
        assert str(interval) == "20-80"
        assert interval.hues[0] == 20
        assert interval.hues[-1] == 80
        assert len(interval.hues) == 61

    @pytest.mark.parametrize("value", ["10", "1-2-3", "a-b", "-5"])
    def test_parse_malformed(self, value):
        """Test strings that are not two integers."""
        with pytest.raises(ValueError):
            HueInterval.parse(value)

    @pytest.mark.parametrize("value", ["10-5", "7-7", "0-360"])
    def test_parse_out_of_range(self, value):
        """Test reversed, empty and out of wheel intervals."""
        with pytest.raises(ValidationError):
            HueInterval.parse(value)


class TestLoggingConfig:
    """Test LoggingConfig model."""

    def test_default_config(self):
        """Test default logging configuration."""
        config = LoggingConfig()

        assert config.level == "WARNING"
        assert config.file is None
        assert config.max_size == 10
        assert config.backup_count == 5
        assert config.console is True

    def test_case_insensitive_log_levels(self):
        """Test that log levels are normalized to upper case."""
        assert LoggingConfig(level="debug").level == "DEBUG"

    def test_invalid_log_level(self):
        """Test invalid log level validation."""
        with pytest.raises(ValidationError):
            LoggingConfig(level="VERBOSE")


class TestConfig:
    """Test main Config class."""

    def test_default_config(self):
        """Test default configuration."""
        config = Config()

        assert config.pod_search == ".+"
        assert config.namespaces == []
        assert config.kubeconfig is None
        assert config.previous is False
        assert config.since_seconds == 0
        assert config.tail_lines == 0
        assert config.timestamps is False
        assert config.loop_pause == 2.0
        assert config.disable_pods_refresh is False
        assert config.debug_color == "255,255,255"
        assert config.color_cycle_len == 0
        assert config.color_saturation == 100
        assert config.color_lightness == 50
        assert config.hue_intervals == [HueInterval(start=0, end=359)]
        assert config.filter is None
        assert config.inv_filter is None

    def test_hue_intervals_from_strings(self):
        """Test hue intervals given as strings."""
        config = Config(hue_intervals="0-60, 180-240")

        assert config.hue_intervals == [
            HueInterval(start=0, end=60),
            HueInterval(start=180, end=240),
        ]

    def test_namespaces_from_comma_string(self):
        """Test namespaces given as a comma separated string."""
        config = Config(namespaces="default, kube-system,")

        assert config.namespaces == ["default", "kube-system"]

    @pytest.mark.parametrize(
        "field,value",
        [
            ("hue_intervals", []),
            ("hue_intervals", ["10-5"]),
            ("hue_intervals", ["0-400"]),
            ("debug_color", "255,255"),
            ("debug_color", "255,255,256"),
            ("debug_color", "red,green,blue"),
            ("pod_search", "api-("),
            ("filter", "[unclosed"),
            ("loop_pause", 0),
            ("color_cycle_len", 256),
            ("color_saturation", 101),
            ("tail_lines", -1),
        ],
    )
    def test_invalid_values(self, field, value):
        """Test values rejected at validation time."""
        with pytest.raises(ValidationError):
            Config(**{field: value})

    def test_replace_requires_both_halves(self):
        """Test that a replacement pattern needs its value and conversely."""
        with pytest.raises(ValidationError):
            Config(replace_pattern="secret=\\w+")
        with pytest.raises(ValidationError):
            Config(replace_value="secret=***")

        config = Config(replace_pattern="secret=\\w+", replace_value="secret=***")
        assert config.replace_value == "secret=***"

    def test_environment_variables(self, monkeypatch):
        """Test settings read from PODTAIL_ environment variables."""
        monkeypatch.setenv("PODTAIL_LOOP_PAUSE", "5")
        monkeypatch.setenv("PODTAIL_POD_SEARCH", "^api-")

        config = Config()

        assert config.loop_pause == 5.0
        assert config.pod_search == "^api-"

    def test_list_environment_variables(self, monkeypatch, tmp_path):
        """Test comma separated lists read from PODTAIL_ environment variables."""
        monkeypatch.setenv("PODTAIL_NAMESPACES", "default,jobs")
        monkeypatch.setenv("PODTAIL_HUE_INTERVALS", "0-100,200-300")

        config = Config.load(search_paths=[str(tmp_path / "missing.yaml")])

        assert config.namespaces == ["default", "jobs"]
        assert config.hue_intervals == [
            HueInterval(start=0, end=100),
            HueInterval(start=200, end=300),
        ]

    def test_invalid_environment_variable(self, monkeypatch, tmp_path):
        """Test a malformed list in the environment."""
        monkeypatch.setenv("PODTAIL_HUE_INTERVALS", "300-100")

        with pytest.raises(ConfigurationError):
            Config.load(search_paths=[str(tmp_path / "missing.yaml")])

    def test_compile(self):
        """Test building the immutable settings record."""
        config = Config(
            pod_search="^api-",
            namespaces=["default", "jobs"],
            debug_color="10,20,30",
            filter="ERROR",
            inv_filter="health",
            replace_pattern="\\d+",
            replace_value="N",
            tail_lines=10,
        )

        settings = config.compile()

        assert isinstance(settings, StreamSettings)
        assert settings.pod_search.search("api-7f9")
        assert not settings.pod_search.search("worker-1")
        assert settings.namespaces == ("default", "jobs")
        assert settings.debug_color == (10, 20, 30)
        assert settings.filter.pattern == "ERROR"
        assert settings.inv_filter.pattern == "health"
        assert settings.replace_pattern.sub(settings.replace_value, "a1b22") == "aNbN"
        assert settings.hue_intervals == (HueInterval(start=0, end=359),)
        assert settings.wants_history is True

    def test_compile_is_immutable(self):
        """Test that compiled settings cannot be changed."""
        settings = Config().compile()

        with pytest.raises(AttributeError):
            settings.loop_pause = 1.0  # type: ignore[misc]

    @pytest.mark.parametrize(
        "overrides,expected",
        [({}, False), ({"tail_lines": 5}, True), ({"since_seconds": 30}, True)],
    )
    def test_wants_history(self, overrides, expected):
        """Test when recent lines are printed before following."""
        assert Config(**overrides).compile().wants_history is expected

    def test_load_from_yaml_file(self, tmp_path):
        """Test loading configuration from a YAML file."""
        config_file = tmp_path / "podtail.yaml"
        config_file.write_text(
            """
pod_search: "^api-"
namespaces:
  - default
  - jobs
tail_lines: 20
hue_intervals:
  - 0-60
  - 180-240
logging:
  level: DEBUG
  file: /tmp/podtail.log
""",
            encoding="utf-8",
        )

        config = Config.load(str(config_file))

        assert config.pod_search == "^api-"
        assert config.namespaces == ["default", "jobs"]
        assert config.tail_lines == 20
        assert len(config.hue_intervals) == 2
        assert config.logging.level == "DEBUG"
        assert config.logging.file == "/tmp/podtail.log"

    def test_load_with_environment_variables(self, tmp_path, monkeypatch):
        """Test environment variable expansion in the YAML file."""
        monkeypatch.setenv("TEAM_NAMESPACE", "payments")
        config_file = tmp_path / "podtail.yaml"
        config_file.write_text("namespaces:\n  - $TEAM_NAMESPACE\n", encoding="utf-8")

        config = Config.load(str(config_file))

        assert config.namespaces == ["payments"]

    def test_load_with_overrides(self, tmp_path):
        """Test that overrides win over the file and None overrides are ignored."""
        config_file = tmp_path / "podtail.yaml"
        config_file.write_text("tail_lines: 10\nprevious: true\n", encoding="utf-8")

        config = Config.load(
            str(config_file), overrides={"tail_lines": 3, "previous": None}
        )

        assert config.tail_lines == 3
        assert config.previous is True

    def test_load_without_file(self, tmp_path):
        """Test loading when no configuration file exists."""
        config = Config.load(
            search_paths=[str(tmp_path / "missing.yaml")],
            overrides={"pod_search": "web"},
        )

        assert config.pod_search == "web"

    def test_load_nonexistent_file(self, tmp_path):
        """Test loading an explicit file that does not exist."""
        with pytest.raises(ConfigurationError, match="not found"):
            Config.load(str(tmp_path / "missing.yaml"))

    def test_load_directory(self, tmp_path):
        """Test loading a path that is not a file."""
        with pytest.raises(ConfigurationError, match="not a file"):
            Config.load(str(tmp_path))

    def test_load_invalid_yaml(self, tmp_path):
        """Test loading a malformed YAML file."""
        config_file = tmp_path / "podtail.yaml"
        config_file.write_text("pod_search: [unclosed\n", encoding="utf-8")

        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            Config.load(str(config_file))

    def test_load_non_mapping(self, tmp_path):
        """Test loading a YAML file that is not a mapping."""
        config_file = tmp_path / "podtail.yaml"
        config_file.write_text("- default\n- jobs\n", encoding="utf-8")

        with pytest.raises(ConfigurationError, match="mapping"):
            Config.load(str(config_file))

    def test_load_invalid_values(self, tmp_path):
        """Test that validation failures surface as configuration errors."""
        config_file = tmp_path / "podtail.yaml"
        config_file.write_text("hue_intervals:\n  - 300-100\n", encoding="utf-8")

        with pytest.raises(ConfigurationError, match="validation failed"):
            Config.load(str(config_file))

    def test_find_config_file(self, tmp_path):
        """Test finding the first existing configuration file."""
        second = tmp_path / "second.yaml"
        second.write_text("tail_lines: 1\n", encoding="utf-8")

        found = Config.find_config_file(
            [str(tmp_path / "first.yaml"), str(second)]
        )

        assert found == second.resolve()
        assert Config.find_config_file([str(tmp_path / "none.yaml")]) is None

    def test_create_template(self, tmp_path):
        """Test creating a documented template that loads back to the defaults."""
        template = tmp_path / "nested" / "podtail.yaml"

        path = Config.create_template(str(template))

        assert path == template.resolve()
        content = template.read_text(encoding="utf-8")
        assert "# Regex matching the pod names to follow" in content
        assert "# Diagnostic logging configuration" in content

        data = yaml.safe_load(content)
        assert data["hue_intervals"] == ["0-359"]
        assert data["logging"]["level"] == "WARNING"

        loaded = Config.load(str(template))
        assert loaded.compile() == Config().compile()
