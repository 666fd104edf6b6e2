"""Telemetry - 统一日志和指标入口

提供统一的日志工厂和指标 facade，便于观测性追踪。

日志格式: [module] [Component:pane[:8]] msg
指标示例: layout.split, layout.noop{op=close}, transport.frames_sent{kind=resize}, layout.panes
"""

import logging

from .config import LOG_LEVEL, METRICS_ENABLED

# 全局日志配置
_LOG_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"


def get_logger(name: str) -> logging.Logger:
    """获取带模块前缀的 logger

    Args:
        name: 模块名（通常使用 __name__）

    Returns:
        配置好的 Logger 实例
    """
    return logging.getLogger(name)


def setup_logging(level: str | None = None) -> None:
    """配置根 logger（入口函数调用一次）"""
    logging.basicConfig(level=(level or LOG_LEVEL).upper(), format=_LOG_FORMAT)


def format_pane_log(component: str, pane_id: str, msg: str) -> str:
    """格式化带 pane_id 的日志消息

    Returns:
        格式化的消息: [component:pane_id[:8]] msg
    """
    pane_short = pane_id[:8] if pane_id else "unknown"
    return f"[{component}:{pane_short}] {msg}"


_LabelKey = tuple[tuple[str, str], ...]


def _label_str(labels: _LabelKey) -> str:
    return ",".join(f"{k}={v}" for k, v in labels)


class Metrics:
    """内存指标：layout.* / transport.* / pty.* 计数器和 gauge

    同名指标按 labels 区分（如 transport.frames_sent{kind=resize}），
    snapshot() 按指标名分组导出给 /api/metrics。
    """

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self._counters: dict[tuple[str, _LabelKey], int] = {}
        self._gauges: dict[tuple[str, _LabelKey], float] = {}

    @staticmethod
    def _key(name: str, labels: dict[str, str] | None) -> tuple[str, _LabelKey]:
        return name, tuple(sorted((labels or {}).items()))

    def inc(self, name: str, labels: dict[str, str] | None = None, value: int = 1) -> None:
        """递增计数器"""
        if not self.enabled:
            return
        key = self._key(name, labels)
        self._counters[key] = self._counters.get(key, 0) + value

    def gauge(self, name: str, value: float, labels: dict[str, str] | None = None) -> None:
        """设置 gauge 值"""
        if not self.enabled:
            return
        self._gauges[self._key(name, labels)] = value

    def get_counter(self, name: str, labels: dict[str, str] | None = None) -> int:
        return self._counters.get(self._key(name, labels), 0)

    def get_gauge(self, name: str, labels: dict[str, str] | None = None) -> float:
        return self._gauges.get(self._key(name, labels), 0.0)

    def total(self, name: str) -> int:
        """计数器在所有 labels 上的合计"""
        return sum(value for (key, _), value in self._counters.items() if key == name)

    def snapshot(self, prefix: str = "") -> dict:
        """导出指标（可按名称前缀过滤，如 "transport."）

        Returns:
            {"enabled", "counters": {name: {labels: value}}, "gauges": {...}}
            无 label 的值放在 "" 下
        """
        counters: dict[str, dict[str, int]] = {}
        for (name, labels), value in sorted(self._counters.items()):
            if name.startswith(prefix):
                counters.setdefault(name, {})[_label_str(labels)] = value
        gauges: dict[str, dict[str, float]] = {}
        for (name, labels), value in sorted(self._gauges.items()):
            if name.startswith(prefix):
                gauges.setdefault(name, {})[_label_str(labels)] = value
        return {"enabled": self.enabled, "counters": counters, "gauges": gauges}

    def reset(self) -> None:
        """重置所有指标（用于测试）"""
        self._counters.clear()
        self._gauges.clear()


# 全局指标实例
metrics = Metrics(enabled=METRICS_ENABLED)
