from social.models import Comment, Conversation, Message, Post, Reply, Story, User

from .base import PASSWORD, SocialTestCase, make_image


class AuthTests(SocialTestCase):

    def test_register(self):
        response = self.client.post("/api/auth/register", {
            "username": "Alice",
            "email": "Alice@Example.com",
            "password": PASSWORD,
            "full_name": "Alice Liddell",
        }, content_type="application/json")

        self.assertEqual(response.status_code, 201)
        user = User.objects.get()
        self.assertEqual(user.username, "alice")
        self.assertEqual(user.email, "alice@example.com")
        self.assertTrue(user.check_password(PASSWORD))
        self.assertNotIn("password", response.json())

    def test_register_duplicate(self):
        self.make_user("alice")
        response = self.client.post("/api/auth/register", {
            "username": "ALICE",
            "email": "other@example.com",
            "password": PASSWORD,
            "full_name": "Another Alice",
        }, content_type="application/json")
        self.assertEqual(response.status_code, 409)

    def test_register_weak_password(self):
        response = self.client.post("/api/auth/register", {
            "username": "alice",
            "email": "alice@example.com",
            "password": "123",
            "full_name": "Alice",
        }, content_type="application/json")
        self.assertEqual(response.status_code, 400)

    def test_register_missing_fields(self):
        response = self.client.post("/api/auth/register", {"username": "alice"}, content_type="application/json")
        self.assertEqual(response.status_code, 400)

    def test_login_with_email_and_refetch(self):
        self.make_user("alice")
        response = self.client.post(
            "/api/auth/login", {"email": "alice@example.com", "password": PASSWORD}, content_type="application/json"
        )
        self.assertEqual(response.status_code, 200)

        me = self.client.get("/api/auth/refetch")
        self.assertEqual(me.status_code, 200)
        self.assertEqual(me.json()["username"], "alice")
        self.assertEqual(me.json()["email"], "alice@example.com")

    def test_login_wrong_password(self):
        self.make_user("alice")
        with self.assertLogs("social.views", level="WARNING"):
            response = self.client.post(
                "/api/auth/login", {"username": "alice", "password": "nope"}, content_type="application/json"
            )
        self.assertEqual(response.status_code, 401)

    def test_login_unknown_user(self):
        response = self.client.post(
            "/api/auth/login", {"username": "ghost", "password": PASSWORD}, content_type="application/json"
        )
        self.assertEqual(response.status_code, 404)

    def test_logout(self):
        self.login(self.make_user("alice"))
        self.assertEqual(self.client.post("/api/auth/logout").status_code, 200)
        response = self.client.get("/api/auth/refetch")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json(), {"error": "You are not logged in"})


class ProfileTests(SocialTestCase):

    def setUp(self):
        super().setUp()
        self.alice = self.make_user("alice")
        self.bob = self.make_user("bob")
        self.login(self.alice)

    def test_get_user_hides_private_fields(self):
        response = self.client.get(f"/api/user/{self.bob.id}")
        self.assertEqual(response.status_code, 200)
        self.assertNotIn("email", response.json())

        own = self.client.get(f"/api/user/{self.alice.id}")
        self.assertEqual(own.json()["email"], "alice@example.com")

    def test_update_fields(self):
        response = self.put_json(f"/api/user/update/{self.alice.id}", {"bio": "Down the rabbit hole", "full_name": "Alice L."})

        self.assertEqual(response.status_code, 200)
        self.alice.refresh_from_db()
        self.assertEqual(self.alice.bio, "Down the rabbit hole")
        self.assertEqual(self.alice.full_name, "Alice L.")

    def test_update_username_taken(self):
        response = self.put_json(f"/api/user/update/{self.alice.id}", {"username": "BOB"})
        self.assertEqual(response.status_code, 409)

    def test_update_someone_else(self):
        response = self.put_json(f"/api/user/update/{self.bob.id}", {"bio": "pwned"})
        self.assertEqual(response.status_code, 403)

    def test_replace_cover_picture(self):
        self.alice.cover_picture_id = "uploads/old-cover"
        self.alice.cover_picture = "https://media.example.test/uploads/old-cover"
        self.alice.profile_picture_id = "uploads/avatar"
        self.alice.save()

        response = self.put_multipart(f"/api/user/update/{self.alice.id}", {
            "image": make_image("cover.png"),
            "image_type": "cover",
        })

        self.assertEqual(response.status_code, 200)
        self.alice.refresh_from_db()
        new_id = self.store.uploaded[0]
        self.assertEqual(self.alice.cover_picture_id, new_id)
        self.assertEqual(self.alice.cover_picture, f"https://media.example.test/{new_id}")
        self.assertEqual(self.alice.profile_picture_id, "uploads/avatar")
        self.assertEqual(self.store.deleted, ["uploads/old-cover"])

    def test_bad_image_type(self):
        response = self.put_multipart(f"/api/user/update/{self.alice.id}", {
            "image": make_image(),
            "image_type": "banner",
        })
        self.assertEqual(response.status_code, 400)
        self.assertEqual(self.store.uploaded, [])

    def test_search(self):
        self.make_user("alicia", full_name="Alicia Keys")
        self.make_user("carol", full_name="Carol Ali")
        self.bob.block_list.add(self.alice)

        response = self.client.get("/api/user/search/ali")
        usernames = [u["username"] for u in response.json()["users"]]
        self.assertEqual(usernames, ["alice", "alicia", "carol"])


class DeleteUserTests(SocialTestCase):

    def setUp(self):
        super().setUp()
        self.a = self.make_user("usera", profile_picture_id="uploads/avatar-a")
        self.b = self.make_user("userb")

    def test_cascade_scenario(self):
        first = Post.objects.create(user=self.a, caption="one", images=["uploads/p1"])
        second = Post.objects.create(user=self.a, caption="two")
        c1 = Comment.objects.create(user=self.b, post=first, text="nice one")
        c2 = Comment.objects.create(user=self.b, post=second, text="nice two")
        self.b.following.add(self.a)

        self.login(self.a)
        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.delete(f"/api/user/delete/{self.a.id}")

        self.assertEqual(response.status_code, 200)
        self.assertFalse(User.objects.filter(pk=self.a.pk).exists())
        self.assertFalse(self.b.following.filter(pk=self.a.pk).exists())
        self.assertFalse(Post.objects.filter(pk__in=[first.pk, second.pk]).exists())
        self.assertFalse(Comment.objects.filter(pk__in=[c1.pk, c2.pk]).exists())
        self.assertEqual(sorted(self.store.deleted), ["uploads/avatar-a", "uploads/p1"])

    def test_removes_everything_pointing_at_user(self):
        carol = self.make_user("carol")
        b_post = Post.objects.create(user=self.b, caption="b's post")
        b_post.likes.add(self.a)
        a_comment = Comment.objects.create(user=self.a, post=b_post, text="from a")
        b_comment = Comment.objects.create(user=self.b, post=b_post, text="from b")
        b_comment.likes.add(self.a, carol)
        a_reply = Reply.objects.create(comment=b_comment, user=self.a, text="a replies")
        b_reply = Reply.objects.create(comment=b_comment, user=self.b, text="b replies")
        b_reply.likes.add(self.a)
        Story.objects.create(user=self.a, text="a's story")
        b_story = Story.objects.create(user=self.b, text="b's story")
        b_story.likes.add(self.a)
        self.a.following.add(carol)
        carol.following.add(self.a)
        self.b.block_list.add(self.a)
        conversation = Conversation.objects.create(user_a=self.a, user_b=carol)
        Message.objects.create(conversation=conversation, sender=carol, content="hi")

        self.login(self.a)
        response = self.client.delete(f"/api/user/delete/{self.a.id}")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(b_post.likes.count(), 0)
        self.assertFalse(Comment.objects.filter(pk=a_comment.pk).exists())
        self.assertEqual(list(b_comment.likes.all()), [carol])
        self.assertFalse(Reply.objects.filter(pk=a_reply.pk).exists())
        self.assertEqual(b_reply.likes.count(), 0)
        self.assertFalse(Story.objects.filter(user_id=self.a.pk).exists())
        self.assertEqual(b_story.likes.count(), 0)
        self.assertEqual(carol.followers.count(), 0)
        self.assertEqual(carol.following.count(), 0)
        self.assertEqual(self.b.block_list.count(), 0)
        self.assertFalse(Conversation.objects.exists())
        self.assertFalse(Message.objects.exists())

    def test_session_ends_after_delete(self):
        self.login(self.a)
        self.client.delete(f"/api/user/delete/{self.a.id}")
        self.assertEqual(self.client.get("/api/auth/refetch").status_code, 401)

    def test_cannot_delete_someone_else(self):
        self.login(self.b)
        response = self.client.delete(f"/api/user/delete/{self.a.id}")

        self.assertEqual(response.status_code, 403)
        self.assertTrue(User.objects.filter(pk=self.a.pk).exists())
