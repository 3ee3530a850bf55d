import json
from typing import Any

from bson import ObjectId
from fastapi.encoders import jsonable_encoder


def to_jsonable(obj: Any) -> Any:
    return jsonable_encoder(obj, custom_encoder={ObjectId: str})


def dumps(obj: Any) -> str:
    return json.dumps(to_jsonable(obj))
