class TestUserSettings:
    def test_defaults_are_created_on_first_read(self, client, parent_a):
        settings = client.get("/api/settings/user").json()

        assert settings["timezone"] == "UTC"
        assert settings["timeFormat"] == "12h"

    def test_partial_update_keeps_other_fields(self, client, parent_a):
        updated = client.put("/api/settings/user", json={"timezone": "Europe/Paris", "theme": "dark"}).json()

        assert updated["timezone"] == "Europe/Paris"
        assert updated["theme"] == "dark"
        assert updated["language"] == "en"

    def test_unknown_theme_is_rejected(self, client, parent_a):
        response = client.put("/api/settings/user", json={"theme": "neon"})

        assert response.status_code == 400


class TestFamilySettings:
    def test_split_must_total_one_hundred(self, client, family, hub):
        response = client.put(f"/api/settings/family/{family.id}", json={"parent1Percentage": 60})

        assert response.status_code == 400
        assert response.json()["error"] == "invalid-percentage-split"
        assert hub.events == []

    def test_balanced_split_is_saved_and_broadcast(self, client, family, hub):
        response = client.put(
            f"/api/settings/family/{family.id}",
            json={"parent1Percentage": 60, "parent2Percentage": 40, "allowSwapRequests": False},
        )

        assert response.status_code == 200
        body = response.json()
        assert (body["parent1Percentage"], body["parent2Percentage"]) == (60, 40)
        assert body["allowSwapRequests"] is False
        assert hub.names() == ["settings:updated"]

    def test_reminder_time_must_be_hh_mm(self, client, family):
        response = client.put(f"/api/settings/family/{family.id}", json={"reminderDefaultTime": "7pm"})

        assert response.status_code == 400
        assert response.json()["error"] == "validation-error"

    def test_disabling_swaps_blocks_new_requests(self, client, family):
        client.put(f"/api/settings/family/{family.id}", json={"allowSwapRequests": False})

        response = client.post(
            f"/api/swap-requests/{family.id}",
            json={"originalDate": "2030-05-10T00:00:00Z", "requestType": "one-way"},
        )

        assert response.status_code == 403
        assert response.json()["error"] == "swap-requests-disabled"

    def test_non_member_cannot_read(self, client, family, outsider):
        client.act_as(outsider.id)

        response = client.get(f"/api/settings/family/{family.id}")

        assert response.status_code == 403
        assert response.json()["error"] == "not-family-member"
