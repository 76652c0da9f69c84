KNOWLEDGE_ENTRY_SCHEMA = {
  "type": "object",
  "properties": {
    "id": {"type": "string", "minLength": 1},
    "question": {"type": "string", "pattern": "\\S"},
    "type": {"type": "string", "enum": ["static", "dynamic"]},
    "resolution": {"type": "string"},
    "metadata": {"type": "object"},
    "created_at": {"type": "string"}
  },
  "required": ["id", "question", "type", "resolution", "metadata"],
  "allOf": [
    {"if": {"properties": {"type": {"const": "static"}}},
     "then": {"properties": {"resolution": {"pattern": "\\S"}}}},
    {"if": {"properties": {"type": {"const": "dynamic"}}},
     "then": {"properties": {"metadata": {"properties": {"function": {"type": "string", "pattern": "\\S"}}, "required": ["function"]}}}}
  ]
}

ATTACHMENT_SCHEMA = {
  "type": "object",
  "properties": {
    "url": {"type": "string", "minLength": 1},
    "name": {"type": "string", "minLength": 1},
    "mime": {"type": "string"},
    "size": {"type": "integer", "minimum": 0}
  },
  "required": ["url", "name", "mime", "size"]
}

MESSAGE_SCHEMA = {
  "type": "object",
  "properties": {
    "id": {"type": "string", "minLength": 1},
    "role": {"type": "string", "enum": ["user", "bot", "agent"]},
    "text": {"type": "string"},
    "timestamp": {"type": "string"},
    "attachment": {"anyOf": [{"type": "null"}, ATTACHMENT_SCHEMA]}
  },
  "required": ["id", "role", "text", "timestamp"]
}

CHAT_BLOB_SCHEMA = {"type": "array", "items": MESSAGE_SCHEMA}
