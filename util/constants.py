# util/constants.py
class InternalURIs:
    API = "/api"
    V1 = API + "/v1"
    RESUME = V1 + "/resume"
    RESUME_STREAM = V1 + "/resume-stream"
    PAGE_ANSWER_STREAM = V1 + "/page-answer-stream"
    CHAT_STREAM = V1 + "/chat-stream"


class ExternalURIs:
    DUCKDUCKGO_SEARCH = "https://api.duckduckgo.com/"
