"""
分析処理の例外定義
"""


class FrequencyError(Exception):
    """本プロジェクトの例外の基底クラス"""


class SchemaError(FrequencyError, ValueError):
    """ソースデータが想定したスキーマに従っていない"""


class InsufficientDataError(FrequencyError):
    """集計に必要な行が存在しない"""


class DivisionByZeroError(FrequencyError, ZeroDivisionError):
    """比較する両年の平均がともに0"""
