"""Protocol constants.

Keep these in one place to avoid stringly-typed message handling.
"""

# Tags every envelope this engine originates, distinguishing it from any
# unrelated traffic sharing the same transport.
MESSAGING_HANDLE = "smart-web-messaging"

# Envelope keys, as they appear on the wire.
MESSAGE_ID = "messageId"
MESSAGING_HANDLE_KEY = "messagingHandle"
MESSAGE_TYPE = "messageType"
PAYLOAD = "payload"
RESPONSE_TO = "responseToMessageId"
ADDITIONAL_RESPONSES = "additionalResponsesExpected"

# Payload discriminator.
TYPE_KEY = "$type"
TYPE_ERROR = "error"
TYPE_BASE = "base"
ERROR_MESSAGE = "errorMessage"
ERROR_TYPE = "errorType"

UNKNOWN_MESSAGE_TYPE = "UnknownMessageTypeException"

# Requests originated here.
HANDSHAKE = "status.handshake"
FORM_SUBMITTED = "form.submitted"

# Requests originated by the host.
CONFIGURE = "sdc.configure"
CONFIGURE_CONTEXT = "sdc.configureContext"
DISPLAY_QUESTIONNAIRE = "sdc.displayQuestionnaire"
REQUEST_SUBMIT = "ui.form.requestSubmit"
PERSIST = "ui.form.persist"
