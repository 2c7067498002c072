from unittest import mock

from django.db import DatabaseError

from social.models import Comment, Post

from .base import SocialTestCase, make_image, make_images


class CreatePostTests(SocialTestCase):

    def setUp(self):
        super().setUp()
        self.alice = self.make_user("alice")
        self.login(self.alice)

    def test_images_stored_in_upload_order(self):
        response = self.client.post("/api/post/create", {"caption": "Hello", "images": make_images(3)})

        self.assertEqual(response.status_code, 201)
        post = Post.objects.get(pk=response.json()["id"])
        self.assertEqual(post.images, self.store.uploaded)
        self.assertEqual(post.user, self.alice)
        self.assertEqual([img["id"] for img in response.json()["images"]], self.store.uploaded)

    def test_caption_required(self):
        response = self.client.post("/api/post/create", {"caption": "  ", "images": make_images(1)})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(self.store.uploaded, [])

    def test_more_than_ten_images_rejected_before_upload(self):
        response = self.client.post("/api/post/create", {"caption": "Too many", "images": make_images(11)})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "Maximum 10 images allowed"})
        self.assertEqual(self.store.uploaded, [])

    def test_failed_insert_discards_every_upload(self):
        with mock.patch.object(Post.objects, "create", side_effect=DatabaseError("disk full")):
            with self.assertLogs("social", level="ERROR"):
                response = self.client.post("/api/post/create", {"caption": "Hi", "images": make_images(3)})

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"error": "Failed to save changes"})
        self.assertEqual(len(self.store.uploaded), 3)
        self.assertEqual(sorted(self.store.deleted), sorted(self.store.uploaded))
        self.assertFalse(Post.objects.exists())

    def test_failed_upload_is_reported_and_compensated(self):
        self.store.fail_uploads_after = 1
        with self.assertLogs("social", level="WARNING"):
            response = self.client.post("/api/post/create", {"caption": "Hi", "images": make_images(2)})

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"error": "Failed to upload images"})
        self.assertEqual(self.store.deleted, self.store.uploaded)
        self.assertFalse(Post.objects.exists())

    def test_login_required(self):
        self.client.logout()
        response = self.client.post("/api/post/create", {"caption": "Hi"})
        self.assertEqual(response.status_code, 401)


class UpdatePostTests(SocialTestCase):

    def setUp(self):
        super().setUp()
        self.alice = self.make_user("alice")
        self.login(self.alice)
        response = self.client.post("/api/post/create", {"caption": "Original", "images": make_images(3)})
        self.post = Post.objects.get(pk=response.json()["id"])
        self.url = f"/api/post/update/{self.post.id}"

    def test_unknown_delete_id_rejects_whole_request(self):
        keep, drop = self.post.images[0], self.post.images[1]
        response = self.put_multipart(self.url, {"delete_images": f"{drop},uploads/not-mine"})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(self.store.deleted, [])
        self.post.refresh_from_db()
        self.assertIn(keep, self.post.images)
        self.assertIn(drop, self.post.images)

    def test_delete_and_add_images(self):
        old = list(self.post.images)
        response = self.put_multipart(self.url, {
            "caption": "Edited",
            "delete_images": old[1],
            "images": [make_image("new.png")],
        })

        self.assertEqual(response.status_code, 200)
        self.post.refresh_from_db()
        new_id = self.store.uploaded[-1]
        self.assertEqual(self.post.images, [new_id, old[0], old[2]])
        self.assertEqual(self.post.caption, "Edited")
        self.assertEqual(self.store.deleted, [old[1]])

    def test_json_caption_only(self):
        response = self.put_json(self.url, {"caption": "Just text"})

        self.assertEqual(response.status_code, 200)
        self.post.refresh_from_db()
        self.assertEqual(self.post.caption, "Just text")
        self.assertEqual(len(self.post.images), 3)

    def test_nothing_to_update(self):
        response = self.put_json(self.url, {"caption": "   ", "delete_images": []})
        self.assertEqual(response.status_code, 400)

    def test_ceiling_checked_before_deleting(self):
        response = self.put_multipart(self.url, {
            "delete_images": self.post.images[0],
            "images": make_images(9),
        })

        self.assertEqual(response.status_code, 400)
        self.assertEqual(self.store.deleted, [])
        self.post.refresh_from_db()
        self.assertEqual(len(self.post.images), 3)

    def test_only_owner_can_update(self):
        self.login(self.make_user("bob"))
        response = self.put_json(self.url, {"caption": "Hijacked"})

        self.assertEqual(response.status_code, 403)
        self.post.refresh_from_db()
        self.assertEqual(self.post.caption, "Original")

    def test_failed_save_keeps_old_media_deleted(self):
        old = list(self.post.images)
        with mock.patch.object(Post, "save", side_effect=DatabaseError("gone")):
            with self.assertLogs("social", level="ERROR"):
                response = self.put_multipart(self.url, {
                    "delete_images": old[0],
                    "images": [make_image("new.png")],
                })

        self.assertEqual(response.status_code, 500)
        new_id = self.store.uploaded[-1]
        self.assertEqual(self.store.deleted, [old[0], new_id])
        self.post.refresh_from_db()
        self.assertEqual(self.post.images, old)


class DeletePostTests(SocialTestCase):

    def setUp(self):
        super().setUp()
        self.alice = self.make_user("alice")
        self.bob = self.make_user("bob")
        self.post = Post.objects.create(user=self.alice, caption="Bye", images=["uploads/a", "uploads/b"])
        self.comment = Comment.objects.create(user=self.bob, post=self.post, text="Nice")

    def test_owner_deletes_post_comments_and_media(self):
        self.login(self.alice)
        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.delete(f"/api/post/delete/{self.post.id}")

        self.assertEqual(response.status_code, 200)
        self.assertFalse(Post.objects.filter(pk=self.post.pk).exists())
        self.assertFalse(Comment.objects.filter(pk=self.comment.pk).exists())
        self.assertEqual(sorted(self.store.deleted), ["uploads/a", "uploads/b"])

    def test_other_user_cannot_delete(self):
        self.login(self.bob)
        response = self.client.delete(f"/api/post/delete/{self.post.id}")

        self.assertEqual(response.status_code, 403)
        self.assertTrue(Post.objects.filter(pk=self.post.pk).exists())

    def test_missing_post(self):
        self.login(self.alice)
        response = self.client.delete("/api/post/delete/9999")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"error": "Post not found"})


class ReadAndLikePostTests(SocialTestCase):

    def setUp(self):
        super().setUp()
        self.alice = self.make_user("alice")
        self.bob = self.make_user("bob")
        self.post = Post.objects.create(user=self.alice, caption="Read me", images=["uploads/a"])

    def test_single_post_is_public(self):
        response = self.client.get(f"/api/post/{self.post.id}")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["caption"], "Read me")
        self.assertEqual(response.json()["images"][0]["url"], "https://media.example.test/uploads/a")

    def test_user_posts(self):
        Post.objects.create(user=self.bob, caption="Not alice's")
        self.login(self.bob)
        response = self.client.get(f"/api/post/user/{self.alice.id}")

        self.assertEqual(response.status_code, 200)
        self.assertEqual([p["id"] for p in response.json()["posts"]], [self.post.id])

    def test_user_posts_hidden_when_blocked(self):
        self.alice.block_list.add(self.bob)
        self.login(self.bob)
        response = self.client.get(f"/api/post/user/{self.alice.id}")
        self.assertEqual(response.status_code, 403)

    def test_like_twice_conflicts(self):
        self.login(self.bob)
        first = self.client.post(f"/api/post/like/{self.post.id}")
        second = self.client.post(f"/api/post/like/{self.post.id}")

        self.assertEqual(first.status_code, 200)
        self.assertEqual(second.status_code, 409)
        self.assertEqual(list(self.post.likes.all()), [self.bob])

    def test_dislike_without_like_conflicts(self):
        self.login(self.bob)
        response = self.client.post(f"/api/post/dislike/{self.post.id}")
        self.assertEqual(response.status_code, 409)

    def test_like_then_dislike(self):
        self.login(self.bob)
        self.client.post(f"/api/post/like/{self.post.id}")
        response = self.client.post(f"/api/post/dislike/{self.post.id}")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["likes"], 0)
