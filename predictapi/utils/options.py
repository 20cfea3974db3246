"""
이벤트 선택지(options) 정규화 유틸리티

저장된 options 는 과거 데이터에 따라 세 가지 형태가 섞여 있다.

- 문자열 리스트: ``["Higher", "Lower"]``
- label/value 객체 리스트: ``[{"label": "$60k-$62k", "value": "a"}, ...]``
- 위 둘 중 하나를 JSON 으로 직렬화한 문자열

스토리지 경계에서 한 번만 결과 식별자 리스트(List[str])로 바꾸고, 서비스
레이어는 형태를 분기하지 않는다.
"""

import json
from typing import Any, List


class OptionShapeError(ValueError):
    """options 를 해석할 수 없을 때"""


def _option_id(option: Any) -> str:
    if isinstance(option, str):
        return option
    if isinstance(option, dict):
        value = option.get("value", option.get("label"))
        if value is None:
            raise OptionShapeError(f"Option object has no value/label: {option!r}")
        return str(value)
    if isinstance(option, (int, float)) and not isinstance(option, bool):
        return str(option)
    raise OptionShapeError(f"Unsupported option shape: {option!r}")


def normalize_options(raw: Any) -> List[str]:
    """options 를 순서를 유지한 결과 식별자 리스트로 변환한다.

    Raises:
        OptionShapeError: 해석할 수 없는 형태이거나 중복 식별자가 있는 경우
    """
    if raw is None:
        return []

    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise OptionShapeError(f"Options string is not valid JSON: {e}") from e

    if not isinstance(raw, (list, tuple)):
        raise OptionShapeError(f"Options must be a list, got {type(raw).__name__}")

    normalized = [_option_id(option) for option in raw]
    if len(set(normalized)) != len(normalized):
        raise OptionShapeError(f"Duplicate option identifiers: {normalized}")
    return normalized
