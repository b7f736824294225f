"""
설정
=====

기본값(DEFAULT_CONFIG) 위에 JSON 파일의 값을 덮어쓴다.
파일은 직접 넘기거나 ZKGRID_CONFIG 환경 변수로 지정한다.

  DEFAULT_CONFIG ──(ZKGRID_CONFIG)──→ 활성 설정 ──(configure)──→ 활성 설정

중첩된 dict는 한 단계까지만 병합하고, 나머지 값은 통째로 바꾼다.
"""

import copy
import json
import os
import threading
from pathlib import Path

CONFIG_ENV_VAR = "ZKGRID_CONFIG"

DEFAULT_CONFIG = {
    "hash_profile": "poseidon2-bn254-t4",   # 해셔와 회로 로더가 공유
    "transcript_mode": "keccak",            # "keccak" (원장 호환) 또는 "native"
    "circuit_path": None,                   # 컴파일된 회로 파일, None이면 프로세스 안에서 컴파일
    "srs_seed": "zkgrid-local-srs",         # 로컬 배포용 결정적 SRS
    "prover": {
        "timeout_seconds": 600.0,
        "self_check": True,                 # 반환 전에 모든 증명을 검증
    },
    "ledger": {
        "timeout_seconds": 30.0,
        "max_retries": 3,
        "retry_backoff_seconds": 0.5,
    },
    "session": {
        "timeout_seconds": 3600.0,
        "db_path": None,                    # None이면 메모리에만 보관
    },
    "log_level": "INFO",
}

_lock = threading.Lock()
_active = None


def merge_config(base, overrides):
    """base의 복사본에 overrides를 병합한다."""
    merged = copy.deepcopy(base)
    for k, v in overrides.items():
        if isinstance(v, dict) and isinstance(merged.get(k), dict):
            merged[k].update(v)
        else:
            merged[k] = v
    return merged


def load_config(path, base=None):
    """
    JSON 설정 파일을 읽어 base에 병합한다.

    Args:
        path: JSON 설정 파일 경로
        base: 기준 설정 (None이면 DEFAULT_CONFIG)

    Raises:
        FileNotFoundError: 파일이 없을 때
        ValueError: 최상위 값이 JSON 객체가 아닐 때
    """
    base = base if base is not None else DEFAULT_CONFIG
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"설정 파일이 없습니다: {path}")
    with p.open("r", encoding="utf-8") as fh:
        data = json.load(fh)
    if not isinstance(data, dict):
        raise ValueError(f"설정 파일은 JSON 객체여야 합니다: {path}")
    return merge_config(base, data)


def get_config():
    """활성 설정을 반환한다. 처음 부를 때 $ZKGRID_CONFIG가 있으면 읽는다."""
    global _active
    with _lock:
        if _active is None:
            env_path = os.environ.get(CONFIG_ENV_VAR)
            _active = load_config(env_path) if env_path else copy.deepcopy(DEFAULT_CONFIG)
        return _active


def configure(**overrides):
    global _active
    current = get_config()
    with _lock:
        _active = merge_config(current, overrides)
        return _active


def reset_config():
    """활성 설정을 버린다. 다음 get_config()가 다시 읽는다."""
    global _active
    with _lock:
        _active = None
