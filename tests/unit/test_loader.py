"""
Unit Tests - Report Loading
"""
import polars as pl

from retention_analytics.ingestion.loader import load_member_import, load_transactions
from retention_analytics.transformation.cleaners import normalize_records

TRANSACTIONS_CSV = (
    "\ufeff店家名稱,訂單狀態,完成剪髮時間,建立時間,會員帳號,客戶姓名,服務理髮師,指定理髮師,剪髮內容,總價\n"
    "Main,完成,2024/01/05 11:40:00,2024/01/05 11:00:00,0911,Lin,Amy,Amy,油頭<br>高漸層,500\n"
    "Main,取消,2024/01/06 11:40:00,2024/01/06 11:00:00,0922,Chen,Amy,,,500\n"
    "East,完成,2024-02-02 10:50:00,2024-02-02 10:20:00,,,Bob,,寸頭,450\n"
)

MEMBERS_CSV = (
    "手機,會員帳號,累積消費次數,生日\n"
    "0900,0911,3次,1990/05/01\n"
    ",0922,,\n"
    "0933,,12,2001-01-01\n"
    "訪客,訪客,5,\n"
)


class TestLoadTransactions:
    """Tests for load_transactions"""

    def test_headers_mapped(self):
        df = load_transactions(TRANSACTIONS_CSV.encode("utf-8"))

        assert {"store", "status", "completion_time", "entry_time", "member_id", "price"} <= set(df.columns)
        assert len(df) == 3

    def test_cells_cleaned(self):
        df = load_transactions(TRANSACTIONS_CSV.encode("utf-8"))
        assert df["style_text"][0] == "油頭 高漸層"

    def test_all_strings(self):
        df = load_transactions(TRANSACTIONS_CSV.encode("utf-8"))
        assert all(dtype == pl.Utf8 for dtype in df.dtypes)

    def test_feeds_normalizer(self):
        result = normalize_records(load_transactions(TRANSACTIONS_CSV.encode("utf-8")))

        assert len(result) == 2
        assert result["member_id"].to_list() == ["0911", "訪客"]
        assert result["price"].to_list() == [500.0, 450.0]

    def test_from_path(self, tmp_path):
        path = tmp_path / "report.csv"
        path.write_text(TRANSACTIONS_CSV, encoding="utf-8")

        assert len(load_transactions(str(path))) == 3


class TestLoadMemberImport:
    """Tests for load_member_import"""

    def test_member_id_priority(self):
        """The member account column wins over the phone column"""
        imports = load_member_import(MEMBERS_CSV.encode("utf-8"), current_year=2024)

        assert "0911" in imports
        assert "0900" not in imports
        assert "0933" in imports

    def test_visit_count_leading_digits(self):
        imports = load_member_import(MEMBERS_CSV.encode("utf-8"), current_year=2024)

        assert imports["0911"].historical_visit_count == 3
        assert imports["0933"].historical_visit_count == 12
        assert imports["0922"].historical_visit_count == 0

    def test_age_from_birthday(self):
        imports = load_member_import(MEMBERS_CSV.encode("utf-8"), current_year=2024)

        assert imports["0911"].age_years == 34
        assert imports["0933"].age_years == 23
        assert imports["0922"].age_years is None

    def test_guest_dropped(self):
        imports = load_member_import(MEMBERS_CSV.encode("utf-8"), current_year=2024)
        assert "訪客" not in imports
