"""news_harvester：從分頁列表與「載入更多」頁面追加擷取文章至 JSONL / CSV。"""
