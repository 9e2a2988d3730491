from pydantic import BaseModel, ConfigDict


class PdfData(BaseModel):
    """1つの PDF から抽出したページごとのテキストと表。

    Attributes:
        file_name: 抽出元の PDF ファイル名（例: "10.1145-3597503.3639076.pdf"）
        texts: ページごとのテキスト
        tables: ページごとの表のリスト。表は行のリストで、セルは文字列または None
    """

    model_config = ConfigDict(frozen=True)

    file_name: str
    texts: list[str]
    tables: list[list[list[list[str | None]]]]
