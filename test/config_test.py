"""
설정 / 와이어링 / CLI 테스트

테스트 항목:
1. load_config: YAML 병합, 누락 파일, 잘못된 형식
2. wiring: executor_factory 로드, RetryConfig / PollerConfig 변환, RetryManager 구성
3. CLI: schedule / process / cancel / stats / health 명령
4. JSON 로깅 설정

실행: python -m pytest test/config_test.py -v
"""

import json
import logging
from pathlib import Path

import pytest
import yaml

from common.config import CONFIG_DIR_ENV, get_config_dir, load_config
from common.logging import CustomJsonFormatter, setup_logging_from_config
from database.registry import DatabaseRegistry
from fulfillu import cli
from fulfillu.wiring import (
    build_manager,
    build_registry,
    load_executor_factory,
    poller_config_from,
    retry_config_from,
)
from retry.base import ExecutorRegistry
from retry.model import PollerConfig


async def refresh_status(subject_id, payload):
    return {"status": "shipped"}


def register_test_executors(registry: ExecutorRegistry) -> None:
    registry.register("status_refresh", refresh_status)


async def register_test_executors_async(registry: ExecutorRegistry) -> None:
    registry.register("notification_send", refresh_status)


NOT_CALLABLE = "status_refresh"


def write_config(config_dir: Path, name: str, data) -> None:
    with open(config_dir / f"{name}.yaml", "w", encoding="utf-8") as f:
        yaml.safe_dump(data, f)


@pytest.fixture
def config_dir(tmp_path):
    """임시 DB와 테스트 실행기를 사용하는 설정 디렉토리"""
    directory = tmp_path / "config"
    directory.mkdir()
    write_config(directory, "database", {
        "databases": {"default": {"type": "sqlite", "path": str(tmp_path / "cli.db")}},
    })
    write_config(directory, "retry", {
        "retry": {
            "database": "default",
            "max_retries": 2,
            "executor_factory": "config_test:register_test_executors",
        },
        "poller": {"poll_interval_seconds": 5, "batch_size": 10},
    })
    return directory


class TestLoadConfig:
    """설정 로드 테스트"""

    def test_merge(self, config_dir):
        config = load_config(config_dir=config_dir)

        assert config["databases"]["default"]["type"] == "sqlite"
        assert config["retry"]["max_retries"] == 2
        assert config["poller"]["batch_size"] == 10

    def test_missing_files_are_skipped(self, config_dir):
        config = load_config(["database", "admin"], config_dir=config_dir)
        assert set(config) == {"databases"}

    def test_non_mapping(self, tmp_path):
        (tmp_path / "retry.yaml").write_text("- 1\n- 2\n", encoding="utf-8")
        with pytest.raises(ValueError, match="mapping"):
            load_config(["retry"], config_dir=tmp_path)

    def test_env_config_dir(self, config_dir, monkeypatch):
        monkeypatch.setenv(CONFIG_DIR_ENV, str(config_dir))

        assert get_config_dir() == config_dir
        assert load_config()["retry"]["max_retries"] == 2

    def test_bundled_config(self, monkeypatch):
        """저장소의 config/ 디렉토리 기본값"""
        monkeypatch.delenv(CONFIG_DIR_ENV, raising=False)
        config = load_config()

        assert config["retry"]["executor_factory"] is None
        assert retry_config_from(config).max_retries == 5
        assert poller_config_from(config) == PollerConfig()


class TestWiring:
    """와이어링 테스트"""

    def test_load_executor_factory(self):
        assert load_executor_factory("config_test:register_test_executors") is register_test_executors

    @pytest.mark.parametrize("path", ["config_test", ":register", "config_test:", "config_test:missing"])
    def test_invalid_factory_path(self, path):
        with pytest.raises(ValueError):
            load_executor_factory(path)

    def test_factory_not_callable(self):
        with pytest.raises(ValueError, match="not found"):
            load_executor_factory("config_test:NOT_CALLABLE")

    @pytest.mark.asyncio
    async def test_build_registry(self):
        registry = await build_registry("config_test:register_test_executors")
        assert registry.types() == ["status_refresh"]

        registry = await build_registry("config_test:register_test_executors_async")
        assert registry.types() == ["notification_send"]

    @pytest.mark.asyncio
    async def test_build_empty_registry(self, caplog):
        registry = await build_registry(None)
        assert len(registry) == 0
        assert "No executors registered" in caplog.text

    def test_retry_config_ignores_unknown_keys(self):
        config = retry_config_from({"retry": {"max_retries": 7, "database": "default", "executor_factory": None}})
        assert config.max_retries == 7
        assert config.base_delay == 1.0

    @pytest.mark.asyncio
    async def test_build_manager(self, config_dir):
        DatabaseRegistry.clear()
        try:
            manager = await build_manager(load_config(config_dir=config_dir))

            assert manager.config.max_retries == 2
            assert "status_refresh" in manager.registry
            operation_id = await manager.schedule_operation("status_refresh", "order-1", immediate=True)
            assert (await manager.get_operation(operation_id)).result == {"status": "shipped"}
        finally:
            await DatabaseRegistry.close_all()


class TestCli:
    """CLI 명령 테스트"""

    @pytest.fixture(autouse=True)
    def no_logging_setup(self, monkeypatch):
        # pytest 로그 캡처 핸들러 유지
        monkeypatch.setattr(cli, "setup_logging_from_config", lambda config: None)

    def run_cli(self, config_dir, capsys, *args):
        code = cli.main(["-c", str(config_dir), *args])
        out = capsys.readouterr().out
        return code, json.loads(out) if out.strip() else None

    def test_no_command(self, capsys):
        assert cli.main([]) == 0
        assert "usage" in capsys.readouterr().out

    def test_schedule_and_process(self, config_dir, capsys):
        code, operation = self.run_cli(
            config_dir, capsys, "schedule", "status_refresh", "order-1", "--payload", '{"force": true}'
        )
        assert code == 0
        assert operation["status"] == "pending"
        assert operation["payload"] == {"force": True}

        code, data = self.run_cli(config_dir, capsys, "process", operation["id"])
        assert code == 0
        assert data == {"operation_id": operation["id"], "success": True}

    def test_schedule_invalid_payload(self, config_dir, capsys):
        assert cli.main(["-c", str(config_dir), "schedule", "status_refresh", "order-1", "--payload", "[1]"]) == 2
        assert "must be a JSON object" in capsys.readouterr().err

    def test_cancel(self, config_dir, capsys):
        _, operation = self.run_cli(config_dir, capsys, "schedule", "status_refresh", "order-1")

        code, data = self.run_cli(config_dir, capsys, "cancel", operation["id"])
        assert code == 0
        assert data == {"operation_id": operation["id"], "cancelled": True}

        code, _ = self.run_cli(config_dir, capsys, "cancel", "missing")
        assert code == 1

    def test_cancel_completed(self, config_dir, capsys):
        _, operation = self.run_cli(config_dir, capsys, "schedule", "status_refresh", "order-1", "--immediate")
        assert operation["status"] == "completed"

        assert cli.main(["-c", str(config_dir), "cancel", operation["id"]]) == 1
        assert "Cannot move operation" in capsys.readouterr().err

    def test_cancel_subject(self, config_dir, capsys):
        self.run_cli(config_dir, capsys, "schedule", "status_refresh", "order-7")
        self.run_cli(config_dir, capsys, "schedule", "notification_send", "order-7")

        code, data = self.run_cli(config_dir, capsys, "cancel-subject", "order-7")
        assert code == 0
        assert data == {"subject_id": "order-7", "cancelled": 2}

    def test_unknown_type_then_requeue(self, config_dir, capsys):
        _, operation = self.run_cli(config_dir, capsys, "schedule", "gift_wrap", "order-1", "--immediate")
        assert operation["status"] == "failed"

        code, data = self.run_cli(config_dir, capsys, "requeue-failed", "--type", "gift_wrap")
        assert code == 0
        assert len(data["requeued"]) == 1

    def test_process_pending_and_recover(self, config_dir, capsys):
        code, data = self.run_cli(config_dir, capsys, "process-pending", "--limit", "5")
        assert code == 0
        assert data == {"processed": 0, "failed": 0, "skipped": 0}

        code, data = self.run_cli(config_dir, capsys, "recover-stuck")
        assert code == 0
        assert data == {"recovered": 0}

    def test_stats_and_health(self, config_dir, capsys):
        self.run_cli(config_dir, capsys, "schedule", "status_refresh", "order-1", "--immediate")

        code, stats = self.run_cli(config_dir, capsys, "stats", "--hours", "1")
        assert code == 0
        assert stats["completed"] == 1
        assert stats["success_rate"] == 100.0

        code, health = self.run_cli(config_dir, capsys, "health")
        assert code == 0
        assert health["status"] == "ok"


class TestLogging:
    """JSON 로깅 포매터 테스트"""

    def test_json_fields(self):
        formatter = CustomJsonFormatter('%(timestamp)s %(level)s %(name)s %(message)s')
        record = logging.LogRecord(
            "retry.manager", logging.WARNING, __file__, 1, "Operation attempt failed: id=%s", ("op-1",), None
        )

        data = json.loads(formatter.format(record))

        assert data["message"] == "Operation attempt failed: id=op-1"
        assert data["level"] == "WARNING"
        assert data["logger"] == "retry.manager"
        assert data["service"] == "fulfillu"
        assert "timestamp" in data

    def test_setup_logging_from_config(self, tmp_path):
        root = logging.getLogger()
        saved = (root.handlers[:], root.level)
        log_file = tmp_path / "fulfillu.log"
        try:
            setup_logging_from_config({
                "logging": {"level": "warning", "json_format": False, "log_file": str(log_file)},
            })
            assert root.level == logging.WARNING
            assert any(isinstance(h, logging.FileHandler) for h in root.handlers)
            assert logging.getLogger("aiosqlite").level == logging.WARNING

            logging.getLogger("fulfillu.test").warning("written to file")
            for handler in root.handlers:
                handler.flush()
            assert "written to file" in log_file.read_text(encoding="utf-8")
        finally:
            for handler in root.handlers:
                if handler not in saved[0]:
                    handler.close()
            root.handlers[:] = saved[0]
            root.setLevel(saved[1])
