"""LiteTerm 配置

配置分为以下几类：
- 服务配置：监听地址、端口
- 终端传输配置：WebSocket 地址、Tab 防抖、横幅
- PTY 配置：shell、默认尺寸
- 文件服务配置：外部文件接口地址
- 渲染配置：SVG 尺寸、scrollback
"""

import os

# === 服务配置 ===
HOST = os.environ.get("LITETERM_HOST", "127.0.0.1")
PORT = int(os.environ.get("LITETERM_PORT", "3000"))

# === 终端传输配置 ===
TERMINAL_WS_URL = os.environ.get("LITETERM_TERMINAL_WS_URL", f"ws://{HOST}:{PORT}/ws/term")
TAB_DEBOUNCE_SECONDS = 0.2  # 两次 Tab 间隔小于此值时丢弃后一次
TAB_SEND_DELAY_SECONDS = 0.05  # Tab 延迟发送，等待本地 widget 状态稳定
BANNER = "\x1b[1;32mLiteTerm\x1b[0m connected\r\n"  # 连接建立时本地输出的横幅
CLOSED_MESSAGE = "\r\n\x1b[33m[connection closed]\x1b[0m\r\n"
ERROR_MESSAGE = "\r\n\x1b[31m[connection error: {error}]\x1b[0m\r\n"

# === PTY 配置 ===
ENABLE_PTY = os.environ.get("LITETERM_ENABLE_PTY", "1") == "1"
DEFAULT_SHELL = "/bin/bash"  # $SHELL 为空时使用
PTY_TERM = "xterm-256color"
PTY_INITIAL_ROWS = 24  # 客户端随后会发送 resize
PTY_INITIAL_COLS = 80
PTY_READ_SIZE = 4096

# === 文件服务配置 ===
FILE_SERVICE_URL = os.environ.get("LITETERM_FILE_SERVICE_URL", f"http://{HOST}:{PORT}")
FILE_SERVICE_TIMEOUT = 10.0  # 秒

# === 渲染配置 ===
SCROLLBACK_MAX_BYTES = 64 * 1024  # 每个终端保留的输出字节数
TERMINAL_ROWS = 24  # BufferTerminalView 的 fit 结果
TERMINAL_COLS = 80
SVG_WIDTH = 160  # 字符
SVG_HEIGHT = 48  # 行
PREVIEW_MAX_CHARS = 4000

# === 日志配置 ===
LOG_LEVEL = os.environ.get("LITETERM_LOG_LEVEL", "INFO")

# === 指标配置 ===
METRICS_ENABLED = True
