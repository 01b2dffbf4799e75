"""錯誤分類。

單篇文章的錯誤（NavigationFailure、ContentMarkerAbsent）在 worker 邊界被轉為
FetchOutcome，不會中斷批次；列表頁的 NavigationFailure 與 SinkWriteFailure
則會結束整個執行。
"""


class HarvestError(Exception):
    """所有擷取錯誤的基礎類別。"""


class NavigationFailure(HarvestError):
    """頁面無法在逾時內載入，或回傳錯誤狀態碼。"""

    def __init__(self, url: str, reason: str, status: int | None = None):
        self.url = url
        self.reason = reason
        self.status = status
        super().__init__(f"{url}: {reason}")


class ContentMarkerAbsent(HarvestError):
    """頁面載入成功，但缺少預期的內容標記；屬於刻意略過而非錯誤。"""

    def __init__(self, url: str):
        self.url = url
        super().__init__(f"{url}: 缺少內容標記")


class SinkWriteFailure(HarvestError):
    """輸出檔案無法寫入。"""

    def __init__(self, path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")
