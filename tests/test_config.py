import pytest

from core.config import AppConfig, ConfigError, Settings
from core.exporter import ExporterService
from core.pool_loader import PoolLoader, PoolTarget


def test_settings_defaults(config_dir) -> None:
    settings = Settings()

    assert settings.WEB_PORT == 8080
    assert settings.POLL_INTERVAL == 60
    assert settings.SCALING_FACTOR == 1e9
    assert settings.REWARDS_ENABLED is True
    assert settings.INCLUDE_POOL_LABEL is None
    assert settings.MAX_TRACKED_WORKERS == 0


def test_environment_overrides_config_file(config_dir, monkeypatch) -> None:
    (config_dir / "config.yaml").write_text(
        "exporter:\n"
        "  poll_interval: 15\n"
        "  scaling_factor: 100000000\n"
        "  rewards_enabled: false\n"
        "pool:\n"
        "  host: file.example\n"
        "  wallet: from-file\n"
    )
    monkeypatch.setenv("POLL_INTERVAL", "30")
    monkeypatch.setenv("INCLUDE_POOL_LABEL", "yes")

    settings = Settings()

    assert settings.POLL_INTERVAL == 30
    assert settings.SCALING_FACTOR == 1e8
    assert settings.REWARDS_ENABLED is False
    assert settings.INCLUDE_POOL_LABEL is True
    assert settings.POOL_HOST == "file.example"
    assert settings.WALLET == "from-file"


@pytest.mark.parametrize("name,value", [
    ("POLL_INTERVAL", "0"),
    ("POLL_INTERVAL", "soon"),
    ("SCALING_FACTOR", "-1"),
    ("WEB_PORT", "http"),
    ("MAX_TRACKED_WORKERS", "-5"),
])
def test_invalid_settings_raise(config_dir, monkeypatch, name, value) -> None:
    monkeypatch.setenv(name, value)

    with pytest.raises(ConfigError):
        Settings()


def test_app_config_dotted_lookup(tmp_path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("web:\n  port: 9100\n")
    config = AppConfig(path)

    assert config.get("web.port") == 9100
    assert config.get("web.host", "0.0.0.0") == "0.0.0.0"
    assert config.get("web.port.extra") is None


def test_app_config_rejects_non_mapping(tmp_path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("- a\n- b\n")

    with pytest.raises(ConfigError):
        AppConfig(path)


def test_single_pool_from_environment(config_dir, monkeypatch) -> None:
    monkeypatch.setenv("POOL_HOST", "etc.pool.example")
    monkeypatch.setenv("WALLET", "0xabc")

    targets = PoolLoader(Settings()).load_all()

    assert len(targets) == 1
    assert targets[0].name == "etc.pool.example"
    assert targets[0].build_url() == "https://etc.pool.example/api/accounts/0xabc"


def test_no_pools_is_a_config_error(config_dir) -> None:
    with pytest.raises(ConfigError):
        PoolLoader(Settings()).load_all()


def test_pool_files_are_loaded_in_name_order(config_dir) -> None:
    pools = config_dir / "pools"
    pools.mkdir()
    (pools / "b_etc.yaml").write_text("host: etc.example\nwallet: w2\npoll_interval: 30\n")
    (pools / "a_eth.yaml").write_text(
        "name: eth\nhost: eth.example\nwallet: w1\nurl_template: 'https://{host}/v2/miner/{wallet}'\n"
    )
    (pools / "empty.yaml").write_text("")

    targets = PoolLoader(Settings()).load_all()

    assert [t.name for t in targets] == ["eth", "b_etc"]
    assert targets[0].build_url() == "https://eth.example/v2/miner/w1"
    assert targets[1].poll_interval == 30


def test_invalid_pool_file_raises(config_dir) -> None:
    pools = config_dir / "pools"
    pools.mkdir()
    (pools / "bad.yaml").write_text("host: ''\nwallet: w\n")

    with pytest.raises(ConfigError):
        PoolLoader(Settings()).load_all()


def test_pool_label_cannot_be_disabled_for_several_pools(config_dir, monkeypatch) -> None:
    monkeypatch.setenv("INCLUDE_POOL_LABEL", "false")
    targets = [
        PoolTarget(name="a", host="a.example", wallet="w"),
        PoolTarget(name="b", host="b.example", wallet="w"),
    ]

    with pytest.raises(ConfigError):
        ExporterService(Settings(), targets)


def test_pool_label_can_be_disabled_for_one_pool(config_dir, monkeypatch) -> None:
    monkeypatch.setenv("INCLUDE_POOL_LABEL", "false")

    exporter = ExporterService(Settings(), [PoolTarget(name="a", host="a.example", wallet="w")])

    assert exporter.include_pool_label is False
