from pydantic import BaseModel, ConfigDict


class Paper(BaseModel):
    """学術論文のメタデータを表すドメインモデル。

    ACM Digital Library のプロシーディングから取得した論文情報を格納します。
    全フィールドが必須で、著者リストのみ空を許容します。
    一度生成したら変更しません。

    Attributes:
        title: 論文のタイトル
        authors: 著者名のリスト（掲載順）
        abstract: アブストラクト本文
        url: 論文ページのURL
        doi: Digital Object Identifier（例: "10.1145/3597503.3639076"）
    """

    model_config = ConfigDict(frozen=True)

    title: str
    authors: list[str]
    abstract: str
    url: str
    doi: str

    @property
    def download_link(self) -> str:
        """PDFエンドポイントへのパス。ホストは含まず、DOIはそのまま埋め込みます。"""
        return f"/doi/pdf/{self.doi}"

    @property
    def sanitized_doi(self) -> str:
        """ファイル名に使えるよう、DOI中のすべての "/" を "-" に置換した文字列。"""
        return self.doi.replace("/", "-")
