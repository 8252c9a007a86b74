from autoconnect.services.profile_io import read_profiles_csv, write_profiles_csv
from autoconnect.workflow.state import ProfileSource
from tests.fakes import make_profile


def test_export_then_import_keeps_queue():
    queue = [
        make_profile("ada-lovelace", title="Engineer", company="Analytical", location="London"),
        make_profile("grace-hopper", source=ProfileSource.NETWORK_PAGE),
    ]

    profiles, skipped = read_profiles_csv(write_profiles_csv(queue))

    assert skipped == 0
    assert [p.canonical_url for p in profiles] == [p.canonical_url for p in queue]
    assert profiles[0].company == "Analytical"
    assert profiles[1].source == ProfileSource.NETWORK_PAGE


def test_import_skips_bad_rows_and_duplicates():
    text = (
        "\ufeffName,Profile_URL,Title\n"
        "Ada Lovelace,https://www.linkedin.com/in/ada-lovelace/?trk=x,Engineer\n"
        ",https://www.linkedin.com/in/no-name,\n"
        "Acme,https://www.linkedin.com/company/acme,\n"
        "Ada L.,https://www.linkedin.com/in/Ada-Lovelace,\n"
    )

    profiles, skipped = read_profiles_csv(text)

    assert [p.name for p in profiles] == ["Ada Lovelace"]
    assert profiles[0].canonical_url == "https://www.linkedin.com/in/ada-lovelace"
    assert profiles[0].source == ProfileSource.SEARCH_PAGE
    assert skipped == 3


def test_import_lead_only_rows():
    text = (
        "Name,Profile_URL,Lead_URL,Source\n"
        "Alan Turing,,\"https://www.linkedin.com/sales/lead/ACw9,NAME_SEARCH?x=1\",lead-platform\n"
    )
    profiles, skipped = read_profiles_csv(text)

    assert skipped == 0
    assert profiles[0].canonical_url == "https://www.linkedin.com/sales/lead/ACw9"
    assert profiles[0].source == ProfileSource.LEAD_PLATFORM


def test_export_header():
    assert write_profiles_csv([]).splitlines() == [
        "Name,Profile_URL,Lead_URL,Title,Company,Location,Source"
    ]
