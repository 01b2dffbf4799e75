"""主流程模組：解析參數、啟動渲染器與輸出檔，執行指定網站的走訪。

使用方式：
    python -m news_harvester --list                    # 列出可用網站
    python -m news_harvester factwatch                 # 依網站預設頁碼範圍擷取
    python -m news_harvester jachai --start-page 3 --end-page 10
    python -m news_harvester factwatch --static        # 以 httpx 取代瀏覽器
    python -m news_harvester earki-jokes --max-articles 50
"""

import argparse
import asyncio
import logging
from pathlib import Path

from . import config
from .errors import SinkWriteFailure
from .models import CrawlRun
from .render import HttpRenderer, PlaywrightRenderer, Renderer
from .sink import RecordSink
from .sites import ALL_SITES
from .sites.base import Site
from .traversal import IncrementalLoader, OffsetPager, Traversal

logger = logging.getLogger(__name__)

# 各網站的輸出檔名主幹
OUTPUT_STEMS = {
    "jachai": "jachai_import",
    "factwatch": "factwatch_factchecks",
    "earki-jokes": "earki_jokes",
    "earki-satire": "earki_satire",
}


def build_run(site: Site, **overrides) -> CrawlRun:
    """合併網站預設值、環境變數與命令列參數，建立 CrawlRun。

    overrides 中值為 None 的鍵會被忽略。
    """
    values = {
        "output_dir": config.DATA_DIR,
        "start_page": site.start_page,
        "end_page": site.end_page if site.mode == "offset" else None,
        "concurrency": site.concurrency or config.CONCURRENCY,
        "delay_base": config.DELAY_BASE,
        "delay_jitter": config.DELAY_JITTER,
        "nav_timeout": config.NAV_TIMEOUT,
        "max_rounds": config.MAX_ROUNDS,
        "settle_interval": config.SETTLE_INTERVAL,
        "sentinel_timeout": config.SENTINEL_TIMEOUT,
        "poll_interval": config.POLL_INTERVAL,
    }
    values.update({k: v for k, v in overrides.items() if v is not None})
    return CrawlRun(**values)


def make_traversal(site: Site, renderer: Renderer, sink: RecordSink, run: CrawlRun) -> Traversal:
    if site.mode == "incremental":
        return IncrementalLoader(site, renderer, sink, run)
    return OffsetPager(site, renderer, sink, run)


async def harvest(site: Site, run: CrawlRun, renderer: Renderer) -> int:
    """開啟輸出檔與渲染器後執行走訪，回傳寫入筆數。"""
    stem = OUTPUT_STEMS.get(site.key, site.key.replace("-", "_"))
    with RecordSink.open_pair(run.output_dir, stem) as sink:
        async with renderer:
            traversal = make_traversal(site, renderer, sink, run)
            total = await traversal.run()
            logger.info(f"失敗 {traversal.failed} 篇、略過 {traversal.skipped} 篇")
        logger.info(f"JSONL：{sink.jsonl_path}")
        logger.info(f"CSV  ：{sink.csv_path}")
    return total


def main(argv: list[str] | None = None) -> int:
    """CLI 進入點：解析命令列參數並執行走訪。"""
    parser = argparse.ArgumentParser(description="從新聞與事實查核網站追加擷取文章")
    parser.add_argument("site", nargs="?", choices=sorted(ALL_SITES), help="要擷取的網站")
    parser.add_argument("--list", action="store_true", help="列出可用網站")
    parser.add_argument("--start-page", type=int, help="起始頁碼（分頁網址模式）")
    parser.add_argument("--end-page", type=int, help="結束頁碼（分頁網址模式）")
    parser.add_argument("--concurrency", type=int, help="同時擷取的文章數上限")
    parser.add_argument("--delay", type=float, dest="delay_base", help="禮貌延遲基準秒數")
    parser.add_argument("--jitter", type=float, dest="delay_jitter", help="隨機抖動上限秒數")
    parser.add_argument("--timeout", type=float, dest="nav_timeout", help="頁面載入逾時秒數")
    parser.add_argument("--max-rounds", type=int, help="「載入更多」迴圈安全上限")
    parser.add_argument("--max-articles", type=int, help="本次最多寫入篇數")
    parser.add_argument("--dedupe-across-pages", action="store_true", default=None,
                        help="分頁網址模式下跨頁去重（預設僅頁內去重）")
    parser.add_argument("--static", action="store_true",
                        help="以 httpx 取得頁面，不啟動瀏覽器（僅分頁網址模式）")
    parser.add_argument("--output-dir", type=Path, help="輸出目錄（預設 data/）")
    parser.add_argument("-v", "--verbose", action="store_true", help="顯示除錯訊息")
    args = parser.parse_args(argv)

    # 設定日誌格式
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    if args.list:
        for key, site in sorted(ALL_SITES.items()):
            mode = "分頁網址" if site.mode == "offset" else "載入更多"
            print(f"  {key:<14} {mode}")
        return 0

    if not args.site:
        parser.error("請指定網站（或使用 --list）")

    site = ALL_SITES[args.site]
    if args.static and site.mode == "incremental":
        parser.error(f"{site.key} 需要瀏覽器點擊「載入更多」，不支援 --static")

    try:
        run = build_run(
            site,
            output_dir=args.output_dir,
            start_page=args.start_page,
            end_page=args.end_page,
            concurrency=args.concurrency,
            delay_base=args.delay_base,
            delay_jitter=args.delay_jitter,
            nav_timeout=args.nav_timeout,
            max_rounds=args.max_rounds,
            max_articles=args.max_articles,
            dedupe_across_pages=args.dedupe_across_pages,
        )
    except ValueError as e:
        parser.error(str(e))

    renderer = HttpRenderer() if args.static else PlaywrightRenderer()

    logger.info(f"開始擷取 {site.key}...")
    try:
        total = asyncio.run(harvest(site, run, renderer))
    except SinkWriteFailure as e:
        logger.error(f"輸出檔寫入失敗：{e}")
        return 1
    except Exception as e:
        # 瀏覽器無法啟動等啟動失敗
        logger.error(f"執行失敗：{e}")
        return 1

    print(f"Done. Total records persisted: {total}")
    return 0
