class HarvesterError(Exception):
    """harvester パッケージが送出する例外の基底クラス。"""


class ConfigurationError(HarvesterError):
    """設定ファイルが読めない、または設定値が不正な場合に送出されます。

    JobName の未設定は例外ではなく、パイプラインの検証ステップで扱います。
    """


class ScrapeError(HarvesterError):
    """ページの HTML から必要な要素が見つからない場合に送出されます。"""


class PdfExtractionError(HarvesterError):
    """PDF を開けない、または内容を読み取れない場合に送出されます。"""
