import main


def test_main_prints_report(source_folder, capsys):
    code = main.main(['--data-folder', str(source_folder), '--years', '2020', '2023', '2024', '--no-cache'])

    out = capsys.readouterr().out
    assert code == 0
    assert 'Frequenzen VBZ Ost' in out
    assert 'Anstieg 2023 gegenüber 2020: +52.9 %' in out
    assert not (source_folder / 'freq_df.db').exists()


def test_main_writes_and_reuses_cache(source_folder, capsys):
    args = ['--data-folder', str(source_folder), '--years', '2020', '2023', '2024']

    assert main.main(args) == 0
    first = capsys.readouterr().out
    assert (source_folder / 'freq_df.db').exists()

    assert main.main(args) == 0
    assert capsys.readouterr().out == first


def test_main_all_weekdays(source_folder, capsys):
    code = main.main(['--data-folder', str(source_folder), '--years', '2020', '2023', '2024',
                      '--no-cache', '--all-weekdays'])

    assert code == 0
    assert 'Daten nur bis 2024-01-07' in capsys.readouterr().out


def test_main_missing_sources(tmp_path):
    code = main.main(['--data-folder', str(tmp_path), '--years', '2020', '--no-cache'])
    assert code == 1
