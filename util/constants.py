class InternalURIs:
    API = "/api"
    V1 = API + "/v1"
    OFFLINE = V1 + "/offline"
    OFFLINE_NOTE = OFFLINE + "/note"
    OFFLINE_QUEUE = OFFLINE + "/queue"
    OFFLINE_SYNC = OFFLINE + "/sync"
    OFFLINE_STATUS = OFFLINE + "/status"
    CONNECTIVITY = V1 + "/connectivity"
    CONNECTIVITY_STREAM = CONNECTIVITY + "/stream"
    CONNECTIVITY_EVENT = CONNECTIVITY + "/{event}"
    WORKER = V1 + "/worker"
    WORKER_UPDATE = WORKER + "/update"
    SMS_BROADCAST = V1 + "/sms/broadcast"


class ExternalURIs:
    BACKEND_REST = "/rest/v1"
    BACKEND_AUTH = "/auth/v1"
    BACKEND_STORAGE = "/storage/v1"


# Cache key under which the offline shell keeps the user's draft note.
OFFLINE_NOTE_KEY = "offline-note"
