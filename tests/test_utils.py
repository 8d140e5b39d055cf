from ktrawler.utils import (
    get_duplicates,
    is_excluded_repo,
    read_list_file,
)


def test_get_duplicates():
    assert get_duplicates([]) == []
    assert get_duplicates([3, 2, 1]) == []
    assert get_duplicates([1, 2, 3, 3, 1, 2, 1]) == [3, 1, 2]
    assert get_duplicates(['1', '2', '3', '3', '1', '2', '1']) == ['3', '1', '2']
    assert get_duplicates([None, None]) == [None]


def test_read_list_file(tmp_path):
    assert read_list_file(str(tmp_path / 'missing.txt')) == []

    list_file = tmp_path / 'excludedRepos.txt'
    list_file.write_text('alice/one\n\n   \n  bob/two  \n')
    assert read_list_file(str(list_file)) == ['alice/one', 'bob/two']


def test_is_excluded_repo():
    assert is_excluded_repo('/corpus/alice/one', ['alice/one'])
    assert is_excluded_repo('/corpus/alice/one', ['one'])
    assert not is_excluded_repo('/corpus/alice/one', ['ne'])
    assert not is_excluded_repo('/corpus/alice/one', [])
    assert not is_excluded_repo('/corpus/alice/one', ['bob/one'])
