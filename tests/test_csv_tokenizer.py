from shop.services.csv_tokenizer import detect_delimiter, parse_csv, split_line


def test_detect_delimiter():
    assert detect_delimiter("sku;nome;preco") == ";"
    assert detect_delimiter("sku,nome,preco") == ","
    # a tie goes to comma
    assert detect_delimiter("a;b,c") == ","


def test_split_line_quotes():
    assert split_line('"Castanha, torrada";10', ";") == ["Castanha, torrada", "10"]
    assert split_line('CX-1,"Castanha, torrada", 10 ', ",") == ["CX-1", "Castanha, torrada", "10"]


def test_split_line_keeps_delimiter_inside_quotes():
    assert split_line('"Rio, Branco",10', ",") == ["Rio, Branco", "10"]


def test_split_line_escaped_quote():
    assert split_line('"Pacote ""premium""",2', ",") == ['Pacote "premium"', "2"]


def test_split_line_empty_fields():
    assert split_line("a,,c,", ",") == ["a", "", "c", ""]


def test_parse_csv_bom_crlf_and_blank_lines():
    text = "\ufeffSKU;Nome\r\nCX-1; Caju \r\n\r\nCX-2;Noz\r\n"
    assert parse_csv(text) == [
        {"SKU": "CX-1", "Nome": "Caju"},
        {"SKU": "CX-2", "Nome": "Noz"},
    ]


def test_parse_csv_short_row_fills_none():
    assert parse_csv("a,b,c\n1,2") == [{"a": "1", "b": "2", "c": None}]


def test_parse_csv_extra_values_are_ignored():
    assert parse_csv("a,b\n1,2,3") == [{"a": "1", "b": "2"}]


def test_parse_csv_trims_headers():
    assert parse_csv(" SKU , Nome \nX,Y") == [{"SKU": "X", "Nome": "Y"}]


def test_parse_csv_without_data_rows():
    assert parse_csv("") == []
    assert parse_csv("sku,nome") == []
    assert parse_csv("sku,nome\n\n\n") == []


def test_parse_csv_single_record():
    assert parse_csv("sku,nome\nA1,Caju\n") == [{"sku": "A1", "nome": "Caju"}]
