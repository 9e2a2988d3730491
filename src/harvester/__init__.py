"""ACM Digital Library から論文メタデータと PDF を収集するジョブランナー。"""

__version__ = "0.1.0"
