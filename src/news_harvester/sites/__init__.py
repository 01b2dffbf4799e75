"""網站註冊表：匯入所有網站並組成 ALL_SITES 對照表。

CLI 以網站 key 選擇要執行的網站。
新增網站時，在此匯入並加入對照表即可。
"""

from .base import Extraction, Site
from .earki import EarkiJokesSite, EarkiSatireSite
from .factwatch import FactWatchSite
from .jachai import JachaiSite

ALL_SITES: dict[str, Site] = {
    site.key: site
    for site in (
        JachaiSite(),        # Jachai：分頁網址，列表頁含標題與日期
        FactWatchSite(),     # FactWatch：分頁網址，需 factcheck-schema
        EarkiJokesSite(),    # eArki 笑話：「載入更多」單頁
        EarkiSatireSite(),   # eArki 諷刺：「載入更多」單頁
    )
}

__all__ = ["ALL_SITES", "Extraction", "Site"]
