import time


def unix_now_ms() -> int:
    return time.time_ns() // 1_000_000
