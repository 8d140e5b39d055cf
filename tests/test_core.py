import os

import pytest

from ktrawler import KotlinSurvey
from ktrawler.database import Database
from ktrawler.sources import Corpus

WHILE_AND_VAL = (
    '<file start="0">\n'
    '  <function start="2"><node type="function_body" start="20">\n'
    '    <property start="40"/>\n'
    '    <while start="60"/>\n'
    '  </node></function>\n'
    '</file>\n'
)

ENUM_WITH_METHOD = (
    '<file start="0">\n'
    '  <class enum="true" start="2"><body start="30">\n'
    '    <enum_entry start="40"/>\n'
    '    <enum_entry start="60"/>\n'
    '    <function start="80"/>\n'
    '  </body></class>\n'
    '</file>\n'
)


@pytest.fixture
def corpus_dir(tmp_path, write_project):
    write_project('corpus/alice/one', {'src/Loop.xml': WHILE_AND_VAL})
    write_project('corpus/bob/two', {'Color.xml': ENUM_WITH_METHOD})
    return str(tmp_path / 'corpus')


def make_survey(xml_analyzer, corpus_dir, source, **kwargs):
    return KotlinSurvey(analyzer=xml_analyzer, corpus=Corpus(corpus_dir), source=source, **kwargs)


def test_local_survey_report(xml_analyzer, corpus_dir, make_source):
    survey = make_survey(xml_analyzer, corpus_dir, make_source(['alice/one', 'bob/two']))
    survey.run(local=True, disable_progress=True)

    report_lines = survey.report().splitlines()
    assert report_lines[:3] == [
        'Repositories analyzed: 2',
        'Files analyzed: 2',
        'Lines analyzed: 15',
    ]
    assert report_lines[3] == 'Error count: 0 in 0 projects'
    assert "'while' loops: 1 in 1 projects" in report_lines
    assert "'val' declarations: 1 in 1 projects" in report_lines
    assert 'Enum entries: 2 in 1 projects' in report_lines
    assert 'Enum classes with entries and members mixed: 0 in 0 projects' in report_lines
    assert 'Functions: 2 in 2 projects' in report_lines
    assert report_lines[-1] == 'Backing fields: 0 in 0 projects'


def test_local_survey_is_idempotent(xml_analyzer, corpus_dir, make_source):
    reports = []
    for _ in range(2):
        survey = make_survey(xml_analyzer, corpus_dir, make_source(['alice/one', 'bob/two']))
        survey.run(local=True, disable_progress=True)
        reports.append(survey.report())
    assert reports[0] == reports[1]


def test_max_repo_count(xml_analyzer, corpus_dir, make_source):
    source = make_source(['alice/one', 'bob/two'])
    survey = make_survey(xml_analyzer, corpus_dir, source)
    survey.run(local=True, max_repo_count=1, disable_progress=True)

    assert survey.session.repositories_analyzed == 1
    assert survey.session['while_loops'].count == 1
    assert survey.session['enum_entries'].count == 0


def test_excluded_repos_are_skipped_and_not_counted(xml_analyzer, corpus_dir, make_source):
    survey = make_survey(xml_analyzer, corpus_dir, make_source(['alice/one', 'bob/two']),
                         excluded_repos=['alice/one'])
    survey.run(local=True, max_repo_count=1, disable_progress=True)

    assert survey.session.repositories_analyzed == 1
    assert survey.session['while_loops'].count == 0
    assert survey.session['enum_entries'].count == 2


def test_private_repos_are_analyzed_after_discovery(xml_analyzer, corpus_dir, make_source, write_project):
    private_repo = write_project('private/secret', {'Color.xml': ENUM_WITH_METHOD})
    survey = make_survey(xml_analyzer, corpus_dir, make_source(['alice/one']),
                         excluded_repos=['secret'], private_repos=[private_repo])
    survey.run(local=True, disable_progress=True)

    assert survey.session.repositories_analyzed == 2
    assert survey.session['enum_entries'].projects == {private_repo}


def test_from_list_files(xml_analyzer, tmp_path):
    excluded_path = tmp_path / 'excludedRepos.txt'
    excluded_path.write_text('alice/one\n\nbob/two\n')
    survey = KotlinSurvey.from_list_files(
        analyzer=xml_analyzer,
        excluded_repos_path=str(excluded_path),
        private_repos_path=str(tmp_path / 'privateRepos.txt'),
    )
    assert survey.excluded_repos == ['alice/one', 'bob/two']
    assert survey.private_repos == []


def test_run_requires_corpus(xml_analyzer):
    with pytest.raises(ValueError):
        KotlinSurvey(analyzer=xml_analyzer).run(disable_progress=True)


def test_analyze_project_usages(xml_analyzer, corpus_dir):
    survey = KotlinSurvey(analyzer=xml_analyzer)
    project = os.path.join(corpus_dir, 'alice', 'one')
    survey.analyze_project(project)

    report_lines = survey.report().splitlines()
    assert 'Labeled expressions: 0 in 0 projects' in report_lines
    assert survey.session.repositories_analyzed == 1
    assert survey.session['vals'].projects == {project}


def test_usage_lines_in_report(xml_analyzer, write_project):
    project = write_project('labels', {
        'Main.xml': '<file start="0">\n<label start="17"/>\n</file>\n',
    })
    survey = KotlinSurvey(analyzer=xml_analyzer)
    survey.analyze_project(project)

    report_lines = survey.report().splitlines()
    index = report_lines.index('Labeled expressions: 1 in 1 projects')
    assert report_lines[index + 1] == f'  Project: {project}; path: Main.xml:2'


def test_results_export(xml_analyzer, corpus_dir, make_source, tmp_path):
    db_filepath = str(tmp_path / 'results.sqlite3')
    survey = make_survey(xml_analyzer, corpus_dir, make_source(['alice/one', 'bob/two']),
                         db_filepath=db_filepath)
    survey.run(local=True, disable_progress=True)

    db = Database(db_filepath)
    db.initialize()
    try:
        feature_counts = db.get_feature_counts()
        assert list(feature_counts)[0] == 'syntax_errors'
        assert feature_counts['while_loops'] == 1
        assert feature_counts['enum_entries'] == 2
        assert db.get_usage_count('enums_with_entries_and_members_mixed') == 0
    finally:
        db.close()
