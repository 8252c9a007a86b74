from autoconnect.models.key_value import KeyValue
from autoconnect.models.lead import Lead
from autoconnect.models.message import Prompt, ConnectionRequest, Message

__all__ = ["KeyValue", "Lead", "Prompt", "ConnectionRequest", "Message"]
