"""Application constants."""

USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
OPEN_DATA_USER_AGENT = "curl/7.81.0"

SUPPORTED_SOURCES = ("judicial", "chb", "bot", "firstbank", "taipei_open_data", "browser")
ID_PREFIX_BY_SOURCE = {
    "judicial": "auc",
    "chb": "chb",
    "bot": "bot",
    "firstbank": "fb",
    "taipei_open_data": "tp",
    "browser": "web",
}

SQM_TO_PING = "0.3025"
ROC_YEAR_OFFSET = 1911
TEN_THOUSAND = 10000

PLACEHOLDER_ADDRESS = "地址未公開"
PLACEHOLDER_TEXT = "未註明"
PLACEHOLDER_DATE = "未知日期"
PLACEHOLDER_FLOOR = "未知樓層"
PLACEHOLDER_PURPOSE = "待查"

EXIT_SUCCESS = 0
EXIT_PARTIAL = 10
EXIT_HARD_FAIL = 20
JSON_LOG_FIELDS = (
    "timestamp",
    "run_id",
    "stage",
    "source",
    "event",
    "status",
    "rows_in",
    "rows_out",
    "error_code",
    "message",
)
